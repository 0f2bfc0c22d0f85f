from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from contracts.diagnostics import Diagnostic


class ExtractEngineName(str, Enum):
    """
    Backends that turn a PDF into an ALTO layout description.

    Engines report the text layer as-is: no OCR, no reordering, no text repair.
    """

    PDFALTO_CLI = "pdfalto_cli"
    PYPDFIUM2 = "pypdfium2"


@dataclass(frozen=True, slots=True)
class ExtractConfig:
    engine: ExtractEngineName = ExtractEngineName.PDFALTO_CLI
    timeout_s: float = 60.0
    reading_order: bool = True  # pdfalto -readingOrder
    first_page: int | None = None  # 1-indexed, inclusive
    last_page: int | None = None
    pdfalto_binary: str = "pdfalto"

    def validate(self) -> None:
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        if self.first_page is not None and self.first_page < 1:
            raise ValueError("first_page must be >= 1")
        if self.last_page is not None and self.last_page < 1:
            raise ValueError("last_page must be >= 1")
        if (
            self.first_page is not None
            and self.last_page is not None
            and self.last_page < self.first_page
        ):
            raise ValueError("last_page must be >= first_page")
        if not self.pdfalto_binary:
            raise ValueError("pdfalto_binary must be non-empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "engine": self.engine.value,
            "timeout_s": self.timeout_s,
            "reading_order": self.reading_order,
            "first_page": self.first_page,
            "last_page": self.last_page,
            "pdfalto_binary": self.pdfalto_binary,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ExtractConfig":
        known = {"engine", "timeout_s", "reading_order", "first_page", "last_page", "pdfalto_binary"}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ValueError(f"Unknown extract config keys: {unknown}")
        kwargs = dict(d)
        if "engine" in kwargs:
            kwargs["engine"] = ExtractEngineName(kwargs["engine"])
        return ExtractConfig(**kwargs)


@dataclass(frozen=True, slots=True)
class ExtractResult:
    """
    Outcome of one extraction run.

    On failure `ok` is False, `description` is None and `errors` holds
    ConversionError diagnostics. Nothing is fabricated to fill a failed run.
    """

    ok: bool
    engine: ExtractEngineName
    description: bytes | None
    errors: list[Diagnostic]
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        # The description itself is written separately (--save-xml).
        return {
            "ok": self.ok,
            "engine": self.engine.value,
            "description_bytes": None if self.description is None else len(self.description),
            "errors": [e.to_dict() for e in self.errors],
            "meta": dict(self.meta),
        }
