from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .diagnostics import Diagnostic
from .layout import Document, Page


@dataclass(frozen=True, slots=True)
class ResolveResult:
    ok: bool
    page: Page | None  # resolved copy: fragments dropped, lines set
    errors: list[Diagnostic]
    warnings: list[Diagnostic] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)  # counts, thresholds, column boundaries


@dataclass(frozen=True, slots=True)
class DocumentResolveResult:
    ok: bool
    document: Document | None
    errors: list[Diagnostic]
    warnings: list[Diagnostic] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
