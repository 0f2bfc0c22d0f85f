from __future__ import annotations

from typing import Any

from contracts.geometry import BBox
from contracts.resolution import ResolveResult


def _bbox_str(b: BBox) -> str:
    return f"({b.x:.1f},{b.y:.1f})-({b.x1:.1f},{b.y1:.1f})"


def format_page_debug(index: int, result: ResolveResult, *, max_lines: int = 0) -> list[str]:
    out: list[str] = [f"=== PAGE {index + 1:03d} ==="]
    if not result.ok or result.page is None:
        out.extend(f"!! {e.code}: {e.message}" for e in result.errors)
        return out

    page = result.page
    meta: dict[str, Any] = result.meta
    lines = page.lines or ()
    out.append(
        f"size={page.width:g}x{page.height:g} lines={len(lines)} "
        f"char_w={meta.get('median_char_width', 0.0):.2f} line_h={meta.get('median_line_height', 0.0):.2f}"
    )
    for b in meta.get("column_boundaries", []):
        out.append(f"gutter x=[{b['x_left']:.1f},{b['x_right']:.1f}] y=[{b['y_top']:.1f},{b['y_bottom']:.1f}]")

    out.append("-- LINES (reading order) --")
    for i, ln in enumerate(lines):
        if max_lines and i >= max_lines:
            out.append(f"... (truncated at {max_lines})")
            break
        col = "-" if ln.column is None else str(ln.column)
        out.append(f"#{ln.reading_rank:<4} {ln.role.value:<10} col={col} bbox={_bbox_str(ln.bbox)} :: {ln.text}")
        for w in ln.words:
            out.append(f"    hint={w.hint_index:<5} x={w.bbox.x:>7.1f} y={w.bbox.y:>7.1f} text={w.text!r}")

    for w in result.warnings:
        out.append(f"!  {w.code}: {w.message}")
    return out
