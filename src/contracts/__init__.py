"""
Canonical contracts shared by the parser, resolver, mapper and viewer.

Every stage consumes/produces these frozen objects (not ad-hoc dicts). Pages
hold flat, indexed sequences; nothing links back to its parent.
"""

from .diagnostics import Diagnostic, DiagnosticKind
from .geometry import BBox
from .grid import Cell, TerminalGrid
from .layout import Document, Page, RawFragment
from .lines import ColumnBoundary, LineRole, ReconstructedLine, Word
from .resolution import DocumentResolveResult, ResolveResult

__all__ = [
    "BBox",
    "RawFragment",
    "Page",
    "Document",
    "Word",
    "LineRole",
    "ReconstructedLine",
    "ColumnBoundary",
    "Cell",
    "TerminalGrid",
    "Diagnostic",
    "DiagnosticKind",
    "ResolveResult",
    "DocumentResolveResult",
]
