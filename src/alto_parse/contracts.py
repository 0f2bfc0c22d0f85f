from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from contracts.diagnostics import Diagnostic
from contracts.layout import Document


class Origin(str, Enum):
    """
    Vertical origin of the description's coordinates.

    Everything downstream of the parser works in TOP_LEFT.
    """

    TOP_LEFT = "top_left"
    BOTTOM_LEFT = "bottom_left"


@dataclass(frozen=True, slots=True)
class ParserConfig:
    origin: Origin = Origin.TOP_LEFT
    # Used only when no page declares or implies a usable size; None => fail.
    fallback_page_size: tuple[float, float] | None = None

    def validate(self) -> None:
        if not isinstance(self.origin, Origin):
            raise ValueError("origin must be an Origin")
        if self.fallback_page_size is not None:
            w, h = self.fallback_page_size
            if w <= 0 or h <= 0:
                raise ValueError("fallback_page_size must be positive")

    def to_dict(self) -> dict[str, Any]:
        return {
            "origin": self.origin.value,
            "fallback_page_size": None if self.fallback_page_size is None else list(self.fallback_page_size),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ParserConfig":
        unknown = sorted(set(d) - {"origin", "fallback_page_size"})
        if unknown:
            raise ValueError(f"Unknown parser config keys: {unknown}")
        fb = d.get("fallback_page_size")
        return ParserConfig(
            origin=Origin(str(d.get("origin", Origin.TOP_LEFT.value))),
            fallback_page_size=(None if fb is None else (float(fb[0]), float(fb[1]))),
        )


@dataclass(frozen=True, slots=True)
class ParseResult:
    """
    On failure `ok` is False and `document` is None. Warnings never flip `ok`.
    """

    ok: bool
    document: Document | None
    errors: list[Diagnostic]
    warnings: list[Diagnostic] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
