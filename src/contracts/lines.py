from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .geometry import BBox


class LineRole(str, Enum):
    COLUMN = "column"
    FULL_WIDTH = "full_width"
    # Emitted for degenerate pages: one line per fragment, description order.
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class Word:
    bbox: BBox
    text: str
    baseline: float
    hint_index: int  # description-order index of the source fragment

    def to_dict(self) -> dict[str, Any]:
        return {
            "bbox": self.bbox.to_dict(),
            "text": self.text,
            "baseline": self.baseline,
            "hint_index": self.hint_index,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Word":
        return Word(
            bbox=BBox.from_dict(d["bbox"]),
            text=str(d["text"]),
            baseline=float(d["baseline"]),
            hint_index=int(d["hint_index"]),
        )


@dataclass(frozen=True, slots=True)
class ReconstructedLine:
    bbox: BBox  # union of member words
    words: tuple[Word, ...]  # ordered left to right by bbox.x
    reading_rank: int
    # Materialized text: words joined, single space where the gap warranted one.
    text: str
    role: LineRole = LineRole.COLUMN
    column: int | None = None  # column group index; None for full-width/fallback

    def to_dict(self) -> dict[str, Any]:
        return {
            "bbox": self.bbox.to_dict(),
            "words": [w.to_dict() for w in self.words],
            "reading_rank": self.reading_rank,
            "text": self.text,
            "role": self.role.value,
            "column": self.column,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ReconstructedLine":
        return ReconstructedLine(
            bbox=BBox.from_dict(d["bbox"]),
            words=tuple(Word.from_dict(w) for w in (d.get("words") or [])),
            reading_rank=int(d["reading_rank"]),
            text=str(d.get("text", "")),
            role=LineRole(str(d.get("role", LineRole.COLUMN.value))),
            column=(None if d.get("column") is None else int(d["column"])),
        )


@dataclass(frozen=True, slots=True)
class ColumnBoundary:
    """
    Vertical whitespace channel separating two column groups.

    [x_left, x_right] is the open horizontal run; [y_top, y_bottom] is the
    vertical range of the content that flanks it.
    """

    x_left: float
    x_right: float
    y_top: float
    y_bottom: float

    @property
    def center(self) -> float:
        return (self.x_left + self.x_right) / 2.0

    @property
    def width(self) -> float:
        return self.x_right - self.x_left

    def to_dict(self) -> dict[str, Any]:
        return {
            "x_left": self.x_left,
            "x_right": self.x_right,
            "y_top": self.y_top,
            "y_bottom": self.y_bottom,
        }
