from __future__ import annotations

import logging
import math
from typing import Sequence

from contracts.diagnostics import WORD_CLIPPED, WORD_DROPPED_OFF_GRID, Diagnostic, layout_warning
from contracts.grid import Cell, TerminalGrid
from contracts.layout import Page
from contracts.lines import ReconstructedLine, Word

from .config import MapperConfig

logger = logging.getLogger(__name__)


def _clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def _check_grid_size(rows: int, cols: int) -> None:
    if rows <= 0 or cols <= 0:
        raise ValueError(f"grid size must be positive, got rows={rows} cols={cols}")


def scale_factors(
    *, page_width: float, page_height: float, rows: int, cols: int, config: MapperConfig
) -> tuple[float, float]:
    """
    Return (scale_x, scale_y) in cells per page unit.

    The page height starts out stretched over `rows`. Aspect correction then
    caps the vertical scale at `scale_x / cell_aspect`, so a grid with rows to
    spare keeps the page's proportions while a short grid still fits the whole
    page height.
    """

    scale_x = cols / page_width
    scale_y = rows / page_height
    if config.cell_aspect is None:
        return scale_x, scale_y
    return scale_x, min(scale_y, scale_x / config.cell_aspect)


def natural_rows(*, page_width: float, page_height: float, cols: int, config: MapperConfig) -> int:
    """Rows needed to show the whole page at `cols` without vertical clamping."""

    if config.cell_aspect is None:
        raise ValueError("natural_rows requires aspect correction (cell_aspect is None)")
    return max(1, math.ceil(page_height * (cols / page_width) / config.cell_aspect))


def _sanitize(text: str, replacement: str) -> str:
    return "".join(ch if ch.isprintable() else replacement for ch in text)


def map_lines_to_grid(
    lines: Sequence[ReconstructedLine],
    *,
    page_width: float,
    page_height: float,
    rows: int,
    cols: int,
    config: MapperConfig | None = None,
) -> TerminalGrid:
    """
    Place each word at its mapped (row, col), writing rightwards.

    Words are clipped at the last column, never wrapped. When rounding collapses
    the gap between two words on a row, the later one is pushed right so at
    least one blank cell separates them.
    """

    config = config or MapperConfig()
    config.validate()
    _check_grid_size(rows, cols)
    if page_width <= 0 or page_height <= 0:
        raise ValueError(f"page size must be positive, got {page_width}x{page_height}")

    scale_x, scale_y = scale_factors(
        page_width=page_width, page_height=page_height, rows=rows, cols=cols, config=config
    )

    placements: list[tuple[int, int, int, int, Word]] = []
    for line in lines:
        for word_index, word in enumerate(line.words):
            row = _clamp(math.floor(word.bbox.center_y * scale_y), 0, rows - 1)
            col = _clamp(math.floor(word.bbox.center_x * scale_x), 0, cols - 1)
            placements.append((row, col, line.reading_rank, word_index, word))
    placements.sort(key=lambda p: p[:4])

    cells: dict[tuple[int, int], Cell] = {}
    next_free: dict[int, int] = {}
    warnings: list[Diagnostic] = []

    for row, col, rank, _, word in placements:
        start = max(col, next_free.get(row, 0))
        if start >= cols:
            warnings.append(
                layout_warning(
                    WORD_DROPPED_OFF_GRID,
                    "Word pushed past the last column by a collision.",
                    {"row": row, "reading_rank": rank, "text": word.text},
                )
            )
            continue

        text = _sanitize(word.text, config.replacement_char)
        visible = text[: cols - start]
        if len(visible) < len(text):
            warnings.append(
                layout_warning(
                    WORD_CLIPPED,
                    "Word overflows the grid width and was clipped.",
                    {"row": row, "col": start, "reading_rank": rank, "text": word.text, "shown": len(visible)},
                )
            )
        for i, ch in enumerate(visible):
            cells[(row, start + i)] = Cell(char=ch, is_fragment_start=(i == 0))
        next_free[row] = start + len(visible) + 1

    if warnings:
        logger.debug("grid %dx%d: %d placement warnings", rows, cols, len(warnings))
    return TerminalGrid(rows=rows, cols=cols, cells=cells, warnings=tuple(warnings))


def map_page_to_grid(page: Page, rows: int, cols: int, config: MapperConfig | None = None) -> TerminalGrid:
    if page.lines is None:
        raise ValueError(f"page {page.index} has not been resolved")
    return map_lines_to_grid(
        page.lines,
        page_width=page.width,
        page_height=page.height,
        rows=rows,
        cols=cols,
        config=config,
    )


def message_grid(messages: Sequence[str], rows: int, cols: int) -> TerminalGrid:
    """Diagnostic grid shown in place of a page that could not be rendered."""

    _check_grid_size(rows, cols)
    cells: dict[tuple[int, int], Cell] = {}
    shown = list(messages)[:rows]
    top = max(0, (rows - len(shown)) // 2)
    for offset, msg in enumerate(shown):
        text = _sanitize(msg, "?")[:cols]
        left = max(0, (cols - len(text)) // 2)
        for i, ch in enumerate(text):
            cells[(top + offset, left + i)] = Cell(char=ch, is_fragment_start=(i == 0))
    return TerminalGrid(rows=rows, cols=cols, cells=cells)
