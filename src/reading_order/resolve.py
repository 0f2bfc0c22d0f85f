from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from statistics import median
from typing import Any

from contracts.diagnostics import (
    DEGENERATE_CLUSTERING,
    OVERLAPPING_WORD_DROPPED,
    PARSE_MISSING_GEOMETRY,
    Diagnostic,
    layout_warning,
    parse_error,
)
from contracts.geometry import BBox
from contracts.layout import Document, Page, RawFragment
from contracts.lines import ColumnBoundary, LineRole, ReconstructedLine, Word
from contracts.resolution import DocumentResolveResult, ResolveResult

from .columns import Segment, column_index, detect_column_boundaries, straddles
from .config import ResolverConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Band:
    members: tuple[RawFragment, ...]
    bbox: BBox
    y_center: float


@dataclass(frozen=True, slots=True)
class _Unit:
    # A whole band, or the part of a band that falls inside one column group.
    members: tuple[RawFragment, ...]
    bbox: BBox
    role: LineRole
    column: int | None


def _fragment_order(f: RawFragment) -> tuple[float, float, int]:
    # Word order within a line: x asc (tie y, then description order)
    return (f.bbox.x, f.bbox.y, f.hint_index)


def _unit_order(u: _Unit) -> tuple[float, float, int]:
    # Vertical position first; equal positions read leftmost first.
    return (u.bbox.center_y, u.bbox.x, min(m.hint_index for m in u.members))


def _median_char_width(fragments: list[RawFragment]) -> float:
    widths = [f.bbox.width / len(f.text) for f in fragments if f.bbox.width > 0 and f.text]
    return float(median(widths)) if widths else 0.0


def _median_height(fragments: list[RawFragment]) -> float:
    heights = [f.bbox.height for f in fragments if f.bbox.height > 0]
    return float(median(heights)) if heights else 0.0


def _x_overlap_ratio(a: BBox, b: BBox) -> float:
    denom = min(a.width, b.width)
    return float(a.x_overlap(b) / denom) if denom > 0 else 0.0


def _is_degenerate(fragments: list[RawFragment]) -> bool:
    if len(fragments) < 2:
        return False
    if all(f.bbox.height <= 0 for f in fragments):
        return True
    return len({(f.bbox.center_x, f.bbox.center_y) for f in fragments}) == 1


def _same_line(a: RawFragment, b: RawFragment, *, ratio: float, min_tolerance: float) -> bool:
    tolerance = max(ratio * min(a.bbox.height, b.bbox.height), min_tolerance)
    return abs(a.bbox.center_y - b.bbox.center_y) < tolerance


def _band_fragments(fragments: list[RawFragment], config: ResolverConfig) -> list[_Band]:
    # Deterministic sweep: sort by center_y, then x, then description order
    sweep = sorted(fragments, key=lambda f: (f.bbox.center_y, f.bbox.x, f.hint_index))
    bands: list[_Band] = []

    for frag in sweep:
        best_i: int | None = None
        best_dy = 0.0
        cy = frag.bbox.center_y

        for i, band in enumerate(bands):
            if not any(
                _same_line(frag, m, ratio=config.line_tolerance_ratio, min_tolerance=config.min_line_tolerance)
                for m in band.members
            ):
                continue
            dy = abs(cy - band.y_center)
            if best_i is None or dy < best_dy:
                best_i = i
                best_dy = dy

        if best_i is None:
            bands.append(_Band(members=(frag,), bbox=frag.bbox, y_center=cy))
        else:
            old = bands[best_i]
            n = len(old.members)
            bands[best_i] = _Band(
                members=old.members + (frag,),
                bbox=old.bbox.union(frag.bbox),
                y_center=(old.y_center * n + cy) / (n + 1),
            )

    return bands


def _split_segments(bands: list[_Band], gap: float) -> list[Segment]:
    segments: list[Segment] = []
    for band_index, band in enumerate(bands):
        ordered = sorted(band.members, key=_fragment_order)
        current = [ordered[0]]
        right_edge = ordered[0].bbox.x1
        for frag in ordered[1:]:
            if frag.bbox.x - right_edge > gap:
                segments.append(Segment(band_index, BBox.union_many([f.bbox for f in current])))
                current = []
            current.append(frag)
            right_edge = max(right_edge, frag.bbox.x1)
        segments.append(Segment(band_index, BBox.union_many([f.bbox for f in current])))
    return segments


def _partition(bands: list[_Band], boundaries: list[ColumnBoundary]) -> list[_Unit]:
    units: list[_Unit] = []
    for band in bands:
        if not boundaries:
            units.append(_Unit(members=band.members, bbox=band.bbox, role=LineRole.COLUMN, column=0))
            continue

        active = [b for b in boundaries if b.y_top <= band.y_center <= b.y_bottom]
        if not active or any(straddles(m.bbox, b) for m in band.members for b in active):
            units.append(_Unit(members=band.members, bbox=band.bbox, role=LineRole.FULL_WIDTH, column=None))
            continue

        groups: dict[int, list[RawFragment]] = {}
        for m in band.members:
            groups.setdefault(column_index(m.bbox.center_x, active), []).append(m)
        for key in sorted(groups):
            members = tuple(groups[key])
            bbox = BBox.union_many([m.bbox for m in members])
            units.append(
                _Unit(members=members, bbox=bbox, role=LineRole.COLUMN, column=column_index(bbox.center_x, boundaries))
            )
    return units


def _order_units(units: list[_Unit]) -> list[_Unit]:
    """
    Column groups top to bottom, groups left to right. A full-width unit
    interrupts: every column unit above it is emitted first, then the
    full-width unit, then reading resumes below.
    """

    def _in_column_order(us: list[_Unit]) -> list[_Unit]:
        return sorted(us, key=lambda u: (u.column or 0, *_unit_order(u)))

    full_width = sorted((u for u in units if u.role != LineRole.COLUMN), key=_unit_order)
    remaining = [u for u in units if u.role == LineRole.COLUMN]

    ordered: list[_Unit] = []
    for fw in full_width:
        key = _unit_order(fw)
        above = [u for u in remaining if _unit_order(u) < key]
        remaining = [u for u in remaining if _unit_order(u) >= key]
        ordered.extend(_in_column_order(above))
        ordered.append(fw)
    ordered.extend(_in_column_order(remaining))
    return ordered


def _materialize(words: tuple[Word, ...], space_threshold: float) -> str:
    parts = [words[0].text]
    for prev, word in zip(words, words[1:]):
        if word.bbox.x - prev.bbox.x1 > space_threshold:
            parts.append(" ")
        parts.append(word.text)
    return "".join(parts)


def _build_line(
    unit: _Unit,
    *,
    rank: int,
    page_index: int,
    space_threshold: float,
    overlap_drop_ratio: float,
    warnings: list[Diagnostic],
) -> ReconstructedLine:
    kept: list[RawFragment] = []
    for frag in sorted(unit.members, key=_fragment_order):
        if kept and _x_overlap_ratio(kept[-1].bbox, frag.bbox) >= overlap_drop_ratio:
            prev = kept[-1]
            winner, loser = (frag, prev) if frag.bbox.width > prev.bbox.width else (prev, frag)
            kept[-1] = winner
            warnings.append(
                layout_warning(
                    OVERLAPPING_WORD_DROPPED,
                    "Overlapping word dropped in favour of the wider one.",
                    {
                        "page": page_index,
                        "kept_hint_index": winner.hint_index,
                        "dropped_hint_index": loser.hint_index,
                        "dropped_text": loser.text,
                    },
                )
            )
            continue
        kept.append(frag)

    words = tuple(Word(bbox=f.bbox, text=f.text, baseline=f.baseline, hint_index=f.hint_index) for f in kept)
    return ReconstructedLine(
        bbox=BBox.union_many([w.bbox for w in words]),
        words=words,
        reading_rank=rank,
        text=_materialize(words, space_threshold),
        role=unit.role,
        column=unit.column,
    )


def _fallback_lines(fragments: list[RawFragment]) -> list[ReconstructedLine]:
    lines: list[ReconstructedLine] = []
    for rank, f in enumerate(sorted(fragments, key=lambda f: f.hint_index)):
        word = Word(bbox=f.bbox, text=f.text, baseline=f.baseline, hint_index=f.hint_index)
        lines.append(
            ReconstructedLine(
                bbox=f.bbox,
                words=(word,),
                reading_rank=rank,
                text=f.text,
                role=LineRole.FALLBACK,
                column=None,
            )
        )
    return lines


def resolve_page(page: Page, config: ResolverConfig | None = None) -> ResolveResult:
    """
    Reconstruct reading-order lines for one page.

    Pure: the input page is not modified and the same input always yields the
    same lines and ranks. The returned page has its fragments dropped.
    """

    config = config or ResolverConfig()
    config.validate()

    meta: dict[str, Any] = {"page": page.index, "resolver_config": config.to_dict()}

    if page.is_resolved:
        return ResolveResult(ok=True, page=page, errors=[], warnings=[], meta={**meta, "already_resolved": True})

    if page.width <= 0 or page.height <= 0:
        return ResolveResult(
            ok=False,
            page=None,
            errors=[
                parse_error(
                    PARSE_MISSING_GEOMETRY,
                    "Page has no usable size",
                    {"page": page.index, "width": page.width, "height": page.height},
                )
            ],
            meta=meta,
        )

    fragments = list(page.fragments)
    warnings: list[Diagnostic] = []
    boundaries: list[ColumnBoundary] = []
    med_cw = _median_char_width(fragments)
    med_h = _median_height(fragments)
    bands_count = 0

    if not fragments:
        lines: list[ReconstructedLine] = []
    elif _is_degenerate(fragments):
        lines = _fallback_lines(fragments)
        warnings.append(
            layout_warning(
                DEGENERATE_CLUSTERING,
                "Fragments could not be clustered; using description order.",
                {"page": page.index, "fragments": len(fragments)},
            )
        )
        logger.info("page %d: degenerate geometry, falling back to description order", page.index)
    else:
        bands = _band_fragments(fragments, config)
        bands_count = len(bands)

        if config.detect_columns and med_cw > 0:
            column_gap = med_cw * config.column_gap_k
            boundaries = detect_column_boundaries(
                _split_segments(bands, column_gap),
                min_gap=column_gap,
                min_flank_height=med_h * config.min_gutter_lines,
                max_columns=config.max_columns,
            )

        ordered = _order_units(_partition(bands, boundaries))
        space_threshold = med_cw * config.space_gap_k
        lines = [
            _build_line(
                unit,
                rank=rank,
                page_index=page.index,
                space_threshold=space_threshold,
                overlap_drop_ratio=config.overlap_drop_ratio,
                warnings=warnings,
            )
            for rank, unit in enumerate(ordered)
        ]

    meta["median_char_width"] = med_cw
    meta["median_line_height"] = med_h
    meta["column_boundaries"] = [b.to_dict() for b in boundaries]
    meta["counts"] = {
        "fragments_in": len(fragments),
        "bands": bands_count,
        "lines": len(lines),
        "columns": len(boundaries) + 1 if lines else 0,
        "warnings": len(warnings),
    }
    logger.debug(
        "page %d: %d fragments -> %d bands -> %d lines (%d column boundaries)",
        page.index,
        len(fragments),
        bands_count,
        len(lines),
        len(boundaries),
    )

    resolved = replace(page, fragments=(), lines=tuple(lines))
    return ResolveResult(ok=True, page=resolved, errors=[], warnings=warnings, meta=meta)


def resolve_document(document: Document, config: ResolverConfig | None = None) -> DocumentResolveResult:
    config = config or ResolverConfig()

    pages: list[Page] = []
    errors: list[Diagnostic] = []
    warnings: list[Diagnostic] = []
    page_meta: list[dict[str, Any]] = []

    for page in document.pages:
        result = resolve_page(page, config)
        errors.extend(result.errors)
        warnings.extend(result.warnings)
        page_meta.append(result.meta)
        if result.page is not None:
            pages.append(result.page)

    if errors:
        return DocumentResolveResult(ok=False, document=None, errors=errors, warnings=warnings, meta={"pages": page_meta})

    resolved = Document(
        pages=tuple(pages),
        source=document.source,
        meta={**document.meta, "resolver": {"pages": page_meta}},
    )
    return DocumentResolveResult(ok=True, document=resolved, errors=[], warnings=warnings, meta={"pages": page_meta})
