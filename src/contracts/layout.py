from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .geometry import BBox
from .lines import ReconstructedLine


@dataclass(frozen=True, slots=True)
class RawFragment:
    """
    Word-level text unit exactly as read from the description.

    `hint_index` is the fragment's position in description order. It is a hint
    only; reading order is decided by the resolver.
    """

    bbox: BBox
    text: str
    hint_index: int
    baseline: float

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "RawFragment":
        bbox = BBox.from_dict(d["bbox"])
        return RawFragment(
            bbox=bbox,
            text=str(d.get("text", "")),
            hint_index=int(d["hint_index"]),
            baseline=float(d["baseline"]) if d.get("baseline") is not None else bbox.y1,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "bbox": self.bbox.to_dict(),
            "text": self.text,
            "hint_index": self.hint_index,
            "baseline": self.baseline,
        }


@dataclass(frozen=True, slots=True)
class Page:
    # 0-indexed position in the document
    index: int
    width: float
    height: float
    fragments: tuple[RawFragment, ...] = ()
    # None until the resolver has run; fragments are dropped at that point.
    lines: tuple[ReconstructedLine, ...] | None = None

    @property
    def is_resolved(self) -> bool:
        return self.lines is not None

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Page":
        lines_raw = d.get("lines")
        return Page(
            index=int(d["index"]),
            width=float(d["width"]),
            height=float(d["height"]),
            fragments=tuple(RawFragment.from_dict(f) for f in (d.get("fragments") or [])),
            lines=(None if lines_raw is None else tuple(ReconstructedLine.from_dict(x) for x in lines_raw)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "width": self.width,
            "height": self.height,
            "fragments": [f.to_dict() for f in self.fragments],
            "lines": None if self.lines is None else [ln.to_dict() for ln in self.lines],
        }


@dataclass(frozen=True, slots=True)
class Document:
    pages: tuple[Page, ...]
    source: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Document":
        pages_raw = d.get("pages") or []
        if not isinstance(pages_raw, list):
            raise TypeError("Document.pages must be a list")
        return Document(
            pages=tuple(Page.from_dict(p) for p in pages_raw),
            source=(None if d.get("source") is None else str(d["source"])),
            meta=dict(d.get("meta") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "meta": dict(self.meta),
            "pages": [p.to_dict() for p in self.pages],
        }
