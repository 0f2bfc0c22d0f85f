from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .diagnostics import Diagnostic


@dataclass(frozen=True, slots=True)
class Cell:
    char: str = " "
    is_fragment_start: bool = False


BLANK = Cell()


@dataclass(frozen=True, slots=True)
class TerminalGrid:
    """
    Finished character grid for one (page, terminal size) pair.

    Only populated cells are stored; every key satisfies 0 <= row < rows and
    0 <= col < cols. Consumers treat the grid as read-only.
    """

    rows: int
    cols: int
    cells: dict[tuple[int, int], Cell] = field(default_factory=dict)
    warnings: tuple[Diagnostic, ...] = ()

    def cell(self, row: int, col: int) -> Cell:
        return self.cells.get((row, col), BLANK)

    def row_text(self, row: int) -> str:
        return "".join(self.cell(row, c).char for c in range(self.cols))

    def to_lines(self, *, rstrip: bool = True) -> list[str]:
        out = [self.row_text(r) for r in range(self.rows)]
        return [ln.rstrip() for ln in out] if rstrip else out

    def is_blank(self) -> bool:
        return all(c.char == " " for c in self.cells.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": self.rows,
            "cols": self.cols,
            "lines": self.to_lines(rstrip=False),
            "warnings": [w.to_dict() for w in self.warnings],
        }
