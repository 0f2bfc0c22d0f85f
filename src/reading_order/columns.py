from __future__ import annotations

from dataclasses import dataclass

from contracts.geometry import BBox
from contracts.lines import ColumnBoundary


@dataclass(frozen=True, slots=True)
class Segment:
    """Horizontal run of a band, split wherever the band has a column-sized gap."""

    band_index: int
    bbox: BBox


def _covered_ranges(lo: float, hi: float, segments: list[Segment]) -> list[tuple[float, float]]:
    # Vertical ranges where some segment spans part of [lo, hi], merged.
    spans = sorted((s.bbox.y, s.bbox.y1) for s in segments if s.bbox.x < hi and s.bbox.x1 > lo)
    merged: list[tuple[float, float]] = []
    for top, bottom in spans:
        if merged and top <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], bottom))
        else:
            merged.append((top, bottom))
    return merged


def _piece_of(y: float, covered: list[tuple[float, float]]) -> int | None:
    # Index of the uncovered vertical piece holding y; None inside a covered range.
    for i, (top, bottom) in enumerate(covered):
        if y < top:
            return i
        if y <= bottom:
            return None
    return len(covered)


def _open_extent(
    lo: float,
    hi: float,
    segments: list[Segment],
    *,
    min_flank_height: float,
) -> tuple[float, float] | None:
    """
    Vertical range over which [lo, hi] is a gutter, or None.

    The y-ranges of segments covering the interval cut the page into vertical
    pieces. A segment belongs to the piece holding its center; one level with
    a covering segment belongs to none. A piece qualifies when it holds content
    on both sides of the interval and that content is taller than
    `min_flank_height`.
    """

    covered = _covered_ranges(lo, hi, segments)
    left: dict[int, list[Segment]] = {}
    right: dict[int, list[Segment]] = {}
    for seg in segments:
        if seg.bbox.x < hi and seg.bbox.x1 > lo:
            continue
        piece = _piece_of(seg.bbox.center_y, covered)
        if piece is None:
            continue
        side = left if seg.bbox.x1 <= lo else right
        side.setdefault(piece, []).append(seg)

    extent: tuple[float, float] | None = None
    for piece in sorted(set(left) & set(right)):
        flank = left[piece] + right[piece]
        top = min(s.bbox.y for s in flank)
        bottom = max(s.bbox.y1 for s in flank)
        if bottom - top > min_flank_height:
            extent = (top, bottom) if extent is None else (min(extent[0], top), max(extent[1], bottom))
    return extent


def detect_column_boundaries(
    segments: list[Segment],
    *,
    min_gap: float,
    min_flank_height: float,
    max_columns: int,
) -> list[ColumnBoundary]:
    """
    Gap histogram over the x-axis.

    Bins are the elementary intervals between segment edges, so coverage is
    constant inside each bin. Open bins are merged into runs; runs wider than
    `min_gap` become boundaries. At most `max_columns - 1` boundaries are kept
    (widest first), returned left to right.
    """

    if max_columns < 2 or len(segments) < 2:
        return []

    edges = sorted({s.bbox.x for s in segments} | {s.bbox.x1 for s in segments})

    runs: list[tuple[float, float, float, float]] = []  # x_left, x_right, y_top, y_bottom
    for lo, hi in zip(edges, edges[1:]):
        if hi <= lo:
            continue
        extent = _open_extent(lo, hi, segments, min_flank_height=min_flank_height)
        if extent is None:
            continue
        if runs and runs[-1][1] == lo:
            x_left, _, top, bottom = runs[-1]
            runs[-1] = (x_left, hi, min(top, extent[0]), max(bottom, extent[1]))
        else:
            runs.append((lo, hi, extent[0], extent[1]))

    boundaries = [
        ColumnBoundary(x_left=x0, x_right=x1, y_top=top, y_bottom=bottom)
        for x0, x1, top, bottom in runs
        if x1 - x0 > min_gap
    ]
    boundaries.sort(key=lambda b: (-b.width, b.x_left))
    boundaries = boundaries[: max_columns - 1]
    boundaries.sort(key=lambda b: b.x_left)
    return boundaries


def straddles(bbox: BBox, boundary: ColumnBoundary) -> bool:
    return bbox.x < boundary.center < bbox.x1


def column_index(center_x: float, boundaries: list[ColumnBoundary]) -> int:
    return sum(1 for b in boundaries if b.center <= center_x)
