"""
Terminal front end: load a PDF (or ALTO description), resolve reading order,
and show pages on a character grid.

Modes: an interactive curses pager, plus non-interactive grid, text, xml,
debug and json dumps.
"""

from .config import ViewerConfig, load_config_file
from .session import LoadOutcome, ViewerSession

__all__ = ["LoadOutcome", "ViewerConfig", "ViewerSession", "load_config_file"]
