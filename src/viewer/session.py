from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from importlib import resources
from pathlib import Path
from typing import Any

from alto_parse import parse_alto
from contracts.diagnostics import CONVERSION_INPUT_NOT_FOUND, Diagnostic, conversion_error
from contracts.grid import TerminalGrid
from contracts.layout import Document
from contracts.resolution import DocumentResolveResult, ResolveResult
from extract import run_extraction
from grid_map import map_page_to_grid, materialize_text, message_grid, natural_rows
from reading_order import resolve_page

from .config import ViewerConfig

logger = logging.getLogger(__name__)

SAMPLE_NAME = "sample.alto.xml"
# Used when the mapping has no aspect correction and the caller gives no row count.
DEFAULT_ROWS = 24


def read_sample_description() -> bytes:
    return (resources.files("viewer") / "data" / SAMPLE_NAME).read_bytes()


def is_description_file(path: Path) -> bool:
    return path.suffix.lower() == ".xml"


@dataclass(frozen=True, slots=True)
class LoadOutcome:
    """
    Result of (re)building the session's document.

    `stage` names the failing stage ("extract" or "parse") when `ok` is False.
    """

    ok: bool
    stage: str | None
    errors: list[Diagnostic]
    warnings: list[Diagnostic] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)


def diagnostic_lines(diagnostics: list[Diagnostic]) -> list[str]:
    return [f"[{d.kind.value}] {d.code}: {d.message}" for d in diagnostics]


class ViewerSession:
    """
    Owns the loaded document and its resolved pages.

    Pages are resolved lazily; each resolved page (lines, no fragments) takes
    the parsed page's place in `document`. `reload()` rebuilds everything from
    the source and drops the cache, so no stale layout survives a reload.
    """

    def __init__(self, source: Path | None, config: ViewerConfig | None = None):
        self.source = source
        self.config = config or ViewerConfig()
        self.description: bytes | None = None
        self.document: Document | None = None
        self.outcome: LoadOutcome | None = None
        self._resolved: dict[int, ResolveResult] = {}

    @property
    def source_label(self) -> str:
        return "<sample>" if self.source is None else str(self.source)

    @property
    def page_count(self) -> int:
        return 0 if self.document is None else self.document.page_count

    def _read_description(self) -> tuple[bytes | None, LoadOutcome | None]:
        if self.source is None:
            return read_sample_description(), None

        if is_description_file(self.source):
            try:
                return self.source.read_bytes(), None
            except OSError as e:
                err = conversion_error(
                    CONVERSION_INPUT_NOT_FOUND,
                    "Description file cannot be read",
                    {"path": str(self.source), "reason": str(e)},
                )
                return None, LoadOutcome(ok=False, stage="extract", errors=[err])

        result = run_extraction(config=self.config.extract, pdf_file=self.source)
        if not result.ok:
            return None, LoadOutcome(ok=False, stage="extract", errors=list(result.errors), meta=result.meta)
        return result.description, None

    def load(self) -> LoadOutcome:
        self._resolved.clear()
        self.document = None
        self.description = None

        description, failure = self._read_description()
        if failure is not None:
            self.outcome = failure
            return failure

        self.description = description
        parsed = parse_alto(description, self.config.parser, source=self.source_label)
        if not parsed.ok:
            self.outcome = LoadOutcome(ok=False, stage="parse", errors=list(parsed.errors), meta=parsed.meta)
            return self.outcome

        self.document = parsed.document
        self.outcome = LoadOutcome(ok=True, stage=None, errors=[], warnings=list(parsed.warnings), meta=parsed.meta)
        logger.info("loaded %s: %d page(s)", self.source_label, self.page_count)
        return self.outcome

    def reload(self) -> LoadOutcome:
        logger.info("reloading %s", self.source_label)
        return self.load()

    def resolve(self, index: int) -> ResolveResult:
        """
        Resolve one page, once per load.

        The resolved page replaces the parsed one in `self.document`, so the
        raw fragments are released as soon as the page has its lines.
        """

        if self.document is None:
            raise RuntimeError("no document loaded")
        cached = self._resolved.get(index)
        if cached is None:
            cached = resolve_page(self.document.pages[index], self.config.layout)
            self._resolved[index] = cached
            if cached.page is not None:
                pages = list(self.document.pages)
                pages[index] = cached.page
                self.document = replace(self.document, pages=tuple(pages))
        return cached

    def resolve_all(self) -> DocumentResolveResult:
        if self.document is None:
            raise RuntimeError("no document loaded")
        results = [self.resolve(i) for i in range(self.page_count)]
        errors = [e for r in results for e in r.errors]
        warnings = [w for r in results for w in r.warnings]
        meta = {"pages": [r.meta for r in results]}
        if errors:
            return DocumentResolveResult(ok=False, document=None, errors=errors, warnings=warnings, meta=meta)
        document = replace(self.document, meta={**self.document.meta, "resolver": meta})
        return DocumentResolveResult(ok=True, document=document, errors=[], warnings=warnings, meta=meta)

    def page_rows(self, index: int, cols: int) -> int:
        page = self.document.pages[index] if self.document is not None else None
        if page is None or self.config.mapping.cell_aspect is None:
            return DEFAULT_ROWS
        return natural_rows(page_width=page.width, page_height=page.height, cols=cols, config=self.config.mapping)

    def fatal_messages(self, index: int | None = None) -> list[str]:
        if self.outcome is not None and not self.outcome.ok:
            return diagnostic_lines(self.outcome.errors)
        if index is not None:
            res = self.resolve(index)
            if not res.ok:
                return diagnostic_lines(res.errors)
        return []

    def page_grid(self, index: int, cols: int, rows: int | None = None) -> TerminalGrid:
        """Grid for one page; a diagnostic grid when the page cannot be rendered."""

        failed = self.fatal_messages(index if self.document is not None else None)
        if failed:
            return message_grid(failed, rows or max(len(failed) + 2, 3), cols)

        res = self.resolve(index)
        if rows is None:
            rows = self.page_rows(index, cols)
        return map_page_to_grid(res.page, rows, cols, self.config.mapping)

    def page_text(self, index: int) -> str:
        res = self.resolve(index)
        if not res.ok:
            return "\n".join(diagnostic_lines(res.errors)) + "\n"
        return materialize_text(res.page.lines, self.config.text)

    def page_warnings(self, index: int) -> list[Diagnostic]:
        """Parse and layout warnings attached to one page (grid warnings excluded)."""

        found: list[Diagnostic] = []
        if self.outcome is not None:
            found.extend(w for w in self.outcome.warnings if (w.detail or {}).get("page") == index)
        if self.document is not None:
            found.extend(self.resolve(index).warnings)
        return found
