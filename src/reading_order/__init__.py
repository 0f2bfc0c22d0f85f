"""
Reading-Order Resolver: a page's unordered fragments -> ordered lines.

Line banding, column detection, ordering with full-width interrupts, then
word ordering with de-duplication. Geometry only; no text content is used.
"""

from .config import ResolverConfig
from .resolve import resolve_document, resolve_page

__all__ = ["ResolverConfig", "resolve_document", "resolve_page"]
