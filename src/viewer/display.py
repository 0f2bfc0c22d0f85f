from __future__ import annotations

import curses
import logging

from contracts.grid import TerminalGrid

from .session import ViewerSession

logger = logging.getLogger(__name__)

HELP = "q quit  n/p page  j/k scroll  g/G top/end  r reload"


class Pager:
    """
    Full-screen page viewer.

    The grid is rebuilt whenever the page, the terminal width or the document
    changes; scrolling only moves the window over the current grid.
    """

    def __init__(self, session: ViewerSession):
        self.session = session
        self.page = 0
        self.top = 0
        self._grid: TerminalGrid | None = None
        self._grid_key: tuple[int, int] | None = None

    def _body_rows(self, height: int) -> int:
        return max(1, height - 1)

    def grid(self, cols: int, body_rows: int) -> TerminalGrid:
        key = (self.page, cols)
        if self._grid is None or self._grid_key != key:
            if self.session.page_count == 0:
                self._grid = self.session.page_grid(0, cols, rows=body_rows)
            else:
                self._grid = self.session.page_grid(self.page, cols)
            self._grid_key = key
            self.top = min(self.top, max(0, self._grid.rows - body_rows))
        return self._grid

    def invalidate(self) -> None:
        self._grid = None
        self._grid_key = None

    def status_line(self, grid: TerminalGrid, body_rows: int) -> str:
        count = self.session.page_count
        parts = [self.session.source_label]
        if count:
            parts.append(f"page {self.page + 1}/{count}")
            last = min(grid.rows, self.top + body_rows)
            parts.append(f"rows {self.top + 1}-{last}/{grid.rows}")
            n_warn = len(self.session.page_warnings(self.page)) + len(grid.warnings)
            if n_warn:
                parts.append(f"[!{n_warn}]")
        else:
            parts.append("load failed")
        parts.append(HELP)
        return " | ".join(parts)

    def draw(self, stdscr) -> None:
        height, width = stdscr.getmaxyx()
        body_rows = self._body_rows(height)
        grid = self.grid(max(1, width), body_rows)

        stdscr.erase()
        for screen_row in range(min(body_rows, height)):
            row = self.top + screen_row
            if row >= grid.rows:
                break
            self._put(stdscr, screen_row, grid.row_text(row).rstrip(), width)
        if height > 1:
            self._put(stdscr, height - 1, self.status_line(grid, body_rows), width, curses.A_REVERSE)
        stdscr.refresh()

    @staticmethod
    def _put(stdscr, row: int, text: str, width: int, attr: int = 0) -> None:
        try:
            stdscr.addnstr(row, 0, text, width, attr)
        except curses.error:
            # Writing the bottom-right cell moves the cursor off-screen.
            pass

    def scroll(self, delta: int, body_rows: int) -> None:
        if self._grid is None:
            return
        limit = max(0, self._grid.rows - body_rows)
        self.top = max(0, min(limit, self.top + delta))

    def goto_page(self, page: int) -> None:
        count = self.session.page_count
        if count == 0:
            return
        page = max(0, min(count - 1, page))
        if page != self.page:
            self.page = page
            self.top = 0
            self.invalidate()

    def reload(self) -> None:
        outcome = self.session.reload()
        if not outcome.ok:
            logger.warning("reload failed at %s stage", outcome.stage)
        self.page = min(self.page, max(0, self.session.page_count - 1))
        self.top = 0
        self.invalidate()

    def handle_key(self, key: int, body_rows: int) -> bool:
        """Apply one key press. Returns False when the viewer should exit."""

        if key in (ord("q"), 27):
            return False
        if key in (ord("n"), curses.KEY_RIGHT):
            self.goto_page(self.page + 1)
        elif key in (ord("p"), curses.KEY_LEFT):
            self.goto_page(self.page - 1)
        elif key in (ord("j"), curses.KEY_DOWN):
            self.scroll(1, body_rows)
        elif key in (ord("k"), curses.KEY_UP):
            self.scroll(-1, body_rows)
        elif key in (ord(" "), curses.KEY_NPAGE):
            self.scroll(body_rows, body_rows)
        elif key in (ord("b"), curses.KEY_PPAGE):
            self.scroll(-body_rows, body_rows)
        elif key == ord("g"):
            self.top = 0
        elif key == ord("G"):
            self.scroll(1 << 30, body_rows)
        elif key == ord("r"):
            self.reload()
        elif key == curses.KEY_RESIZE:
            curses.update_lines_cols()
            self.invalidate()
        return True

    def run(self, stdscr) -> int:
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        stdscr.keypad(True)
        while True:
            self.draw(stdscr)
            height, _ = stdscr.getmaxyx()
            if not self.handle_key(stdscr.getch(), self._body_rows(height)):
                return 0


def run_viewer(session: ViewerSession) -> int:
    return curses.wrapper(Pager(session).run)
