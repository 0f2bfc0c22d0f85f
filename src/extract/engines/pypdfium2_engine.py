from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from contracts.diagnostics import (
    CONVERSION_BACKEND_ERROR,
    CONVERSION_BACKEND_NOT_INSTALLED,
    CONVERSION_INPUT_NOT_FOUND,
    CONVERSION_NO_OUTPUT,
    conversion_error,
)

from ..contracts import ExtractConfig, ExtractEngineName, ExtractResult
from .base import ExtractEngine

logger = logging.getLogger(__name__)

ALTO_NS = "http://www.loc.gov/standards/alto/ns-v3#"


@dataclass
class _WordAcc:
    chars: list[str] = field(default_factory=list)
    x0: float = 0.0
    y0: float = 0.0
    x1: float = 0.0
    y1: float = 0.0

    def add(self, ch: str, box: tuple[float, float, float, float]) -> None:
        if not self.chars:
            self.x0, self.y0, self.x1, self.y1 = box
        else:
            self.x0 = min(self.x0, box[0])
            self.y0 = min(self.y0, box[1])
            self.x1 = max(self.x1, box[2])
            self.y1 = max(self.y1, box[3])
        self.chars.append(ch)


def _fmt(v: float) -> str:
    return f"{v:.2f}"


def _continues_line(prev: tuple[float, float, float, float], box: tuple[float, float, float, float]) -> bool:
    """Same visual line: vertical centers close and no jump back to the left."""

    prev_h = prev[3] - prev[1]
    h = box[3] - box[1]
    tol = max(prev_h, h) / 2.0
    same_row = abs((prev[1] + prev[3]) / 2.0 - (box[1] + box[3]) / 2.0) <= tol
    return same_row and box[0] >= prev[0] - tol


def words_to_lines(
    chars: list[tuple[str, tuple[float, float, float, float]]],
) -> list[list[_WordAcc]]:
    """
    Group top-left-origin character boxes into words and lines.

    Whitespace ends a word; a line break or a jump to another visual row ends
    the line too. Characters are taken in content-stream order.
    """

    lines: list[list[_WordAcc]] = []
    line: list[_WordAcc] = []
    word = _WordAcc()
    prev_box: tuple[float, float, float, float] | None = None

    def _end_word() -> None:
        nonlocal word
        if word.chars:
            line.append(word)
        word = _WordAcc()

    def _end_line() -> None:
        nonlocal line
        _end_word()
        if line:
            lines.append(line)
        line = []

    for ch, box in chars:
        if ch in ("\r", "\n"):
            _end_line()
            prev_box = None
            continue
        if not ch or ch.isspace():
            _end_word()
            continue
        if prev_box is not None and not _continues_line(prev_box, box):
            _end_line()
        word.add(ch, box)
        prev_box = box
    _end_line()
    return lines


def build_alto(pages: list[tuple[float, float, list[list[_WordAcc]]]]) -> bytes:
    """Serialize (width, height, lines) per page as a minimal ALTO v3 document."""

    ET.register_namespace("", ALTO_NS)
    root = ET.Element(f"{{{ALTO_NS}}}alto")
    layout = ET.SubElement(root, f"{{{ALTO_NS}}}Layout")
    string_id = 0
    for page_no, (width, height, lines) in enumerate(pages, start=1):
        page_el = ET.SubElement(
            layout,
            f"{{{ALTO_NS}}}Page",
            {"ID": f"Page{page_no}", "PHYSICAL_IMG_NR": str(page_no), "WIDTH": _fmt(width), "HEIGHT": _fmt(height)},
        )
        space = ET.SubElement(page_el, f"{{{ALTO_NS}}}PrintSpace")
        block = ET.SubElement(space, f"{{{ALTO_NS}}}TextBlock", {"ID": f"p{page_no}_b1"})
        for line_no, words in enumerate(lines, start=1):
            baseline = max(w.y1 for w in words)
            line_el = ET.SubElement(
                block,
                f"{{{ALTO_NS}}}TextLine",
                {"ID": f"p{page_no}_l{line_no}", "BASELINE": _fmt(baseline)},
            )
            for w in words:
                string_id += 1
                ET.SubElement(
                    line_el,
                    f"{{{ALTO_NS}}}String",
                    {
                        "ID": f"s{string_id}",
                        "CONTENT": "".join(w.chars),
                        "HPOS": _fmt(w.x0),
                        "VPOS": _fmt(w.y0),
                        "WIDTH": _fmt(w.x1 - w.x0),
                        "HEIGHT": _fmt(w.y1 - w.y0),
                    },
                )
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


class Pypdfium2Engine(ExtractEngine):
    """In-process fallback reading the PDF text layer through pdfium."""

    def backend_id(self) -> str:
        return "pypdfium2"

    def backend_version(self) -> str | None:
        try:
            import pypdfium2 as pdfium  # type: ignore
        except ImportError:
            return None
        return getattr(pdfium, "__version__", None)

    def _fail(self, code: str, message: str, detail: dict[str, Any], meta: dict[str, Any]) -> ExtractResult:
        logger.warning("pypdfium2 extraction failed: %s (%s)", message, code)
        return ExtractResult(
            ok=False,
            engine=ExtractEngineName.PYPDFIUM2,
            description=None,
            errors=[conversion_error(code, message, detail)],
            meta=meta,
        )

    def _read_page(self, pdf, index: int) -> tuple[float, float, list[list[_WordAcc]]]:
        page = pdf[index]
        try:
            width, height = page.get_size()
            textpage = page.get_textpage()
            try:
                chars = []
                for i in range(textpage.count_chars()):
                    ch = textpage.get_text_range(index=i, count=1)
                    left, bottom, right, top = textpage.get_charbox(i)
                    # PDF space is bottom-left; ALTO is top-left.
                    chars.append((ch, (left, height - top, right, height - bottom)))
            finally:
                textpage.close()
        finally:
            page.close()
        return float(width), float(height), words_to_lines(chars)

    def run_on_pdf_file(self, *, config: ExtractConfig, pdf_file: Path) -> ExtractResult:
        # pdfium exposes no per-call timeout; config.timeout_s does not apply here.
        meta: dict[str, Any] = {
            "backend": self.backend_id(),
            "backend_version": self.backend_version(),
            "first_page": config.first_page,
            "last_page": config.last_page,
        }

        if not pdf_file.is_file():
            return self._fail(
                CONVERSION_INPUT_NOT_FOUND, "Input PDF file not found", {"pdf_file": str(pdf_file)}, meta
            )

        try:
            import pypdfium2 as pdfium  # type: ignore
        except ImportError:
            return self._fail(
                CONVERSION_BACKEND_NOT_INSTALLED,
                "pypdfium2 is not installed",
                {"expected_module": "pypdfium2"},
                meta,
            )

        try:
            pdf = pdfium.PdfDocument(str(pdf_file))
        except pdfium.PdfiumError as e:
            return self._fail(CONVERSION_BACKEND_ERROR, "pdfium could not open the PDF", {"error": str(e)}, meta)

        try:
            page_count = len(pdf)
            first = (config.first_page or 1) - 1
            last = min(config.last_page or page_count, page_count)
            pages = [self._read_page(pdf, i) for i in range(first, last)]
        except pdfium.PdfiumError as e:
            return self._fail(CONVERSION_BACKEND_ERROR, "pdfium failed while reading text", {"error": str(e)}, meta)
        finally:
            pdf.close()

        meta["page_count"] = page_count
        if not pages:
            return self._fail(
                CONVERSION_NO_OUTPUT,
                "Requested page range is outside the document",
                {"page_count": page_count},
                meta,
            )
        if not any(lines for _, _, lines in pages):
            return self._fail(CONVERSION_NO_OUTPUT, "PDF has no text layer", {"page_count": page_count}, meta)

        description = build_alto(pages)
        logger.info("pypdfium2: %d page(s) of ALTO from %s", len(pages), pdf_file.name)
        return ExtractResult(
            ok=True,
            engine=ExtractEngineName.PYPDFIUM2,
            description=description,
            errors=[],
            meta=meta,
        )
