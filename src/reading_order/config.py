from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    """
    Reading-order thresholds.

    Distances are derived from per-page medians so the defaults hold across
    point sizes: "char width" is the median fragment width / text length and
    "line height" is the median fragment height.
    """

    # Two fragments share a band iff |center_y delta| < ratio * min(height).
    line_tolerance_ratio: float = 0.5
    min_line_tolerance: float = 0.0

    detect_columns: bool = True
    # column_gap_threshold = median_char_width * k
    column_gap_k: float = 2.5
    # Content flanking a gutter must be taller than this many line heights.
    min_gutter_lines: float = 1.0
    max_columns: int = 4

    # A space is materialized between words whose gap > median_char_width * k.
    space_gap_k: float = 0.15
    # Adjacent words overlapping by >= this share of the narrower one are deduplicated.
    overlap_drop_ratio: float = 0.5

    def validate(self) -> None:
        if self.line_tolerance_ratio <= 0:
            raise ValueError("line_tolerance_ratio must be > 0")
        if self.min_line_tolerance < 0:
            raise ValueError("min_line_tolerance must be >= 0")
        if self.column_gap_k <= 0:
            raise ValueError("column_gap_k must be > 0")
        if self.min_gutter_lines < 0:
            raise ValueError("min_gutter_lines must be >= 0")
        if self.max_columns < 1:
            raise ValueError("max_columns must be >= 1")
        if self.space_gap_k < 0:
            raise ValueError("space_gap_k must be >= 0")
        if not (0.0 < self.overlap_drop_ratio <= 1.0):
            raise ValueError("overlap_drop_ratio must be within (0, 1]")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ResolverConfig":
        known = {f.name for f in fields(ResolverConfig)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ValueError(f"Unknown resolver config keys: {unknown}")
        return ResolverConfig(**d)
