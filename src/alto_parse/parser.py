from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Iterator

from contracts.diagnostics import (
    BBOX_REPAIRED,
    FRAGMENT_CLAMPED,
    MISSING_GEOMETRY,
    PAGE_SIZE_INFERRED,
    PARSE_ENCODING_ERROR,
    PARSE_MALFORMED_STRUCTURE,
    PARSE_MISSING_GEOMETRY,
    Diagnostic,
    layout_warning,
    parse_error,
)
from contracts.geometry import BBox
from contracts.layout import Document, Page, RawFragment

from .contracts import Origin, ParserConfig, ParseResult

logger = logging.getLogger(__name__)

_XML_DECL_ENCODING = re.compile(rb"""^\s*<\?xml[^>]*encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")
_GEOMETRY_ATTRS = ("HPOS", "VPOS", "WIDTH", "HEIGHT")


def _local(tag: Any) -> str:
    # Comments/PIs carry a callable tag; treat them as unnamed.
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _num(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        out = float(value.strip())
    except ValueError:
        return None
    return out if math.isfinite(out) else None


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


@dataclass(frozen=True, slots=True)
class _RawString:
    text: str
    hpos: float
    vpos: float
    width: float
    height: float
    baseline: float | None
    missing: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class _RawPage:
    declared_width: float | None
    declared_height: float | None
    strings: list[_RawString]


def _decode(data: bytes) -> str:
    """
    Decode per the XML declaration (UTF-8 when absent). Raises
    UnicodeDecodeError / LookupError for undecodable input.
    """

    m = _XML_DECL_ENCODING.match(data[:256].lstrip(b"\xef\xbb\xbf"))
    encoding = m.group(1).decode("ascii") if m else "utf-8"
    if encoding.lower().replace("_", "-") in ("utf-8", "utf8"):
        encoding = "utf-8-sig"
    return data.decode(encoding)


def _iter_strings(elem: ET.Element, baseline: float | None) -> Iterator[tuple[ET.Element, float | None]]:
    for child in elem:
        name = _local(child.tag)
        if name == "String":
            yield child, baseline
        elif name == "TextLine":
            line_baseline = _num(child.get("BASELINE"))
            yield from _iter_strings(child, line_baseline if line_baseline is not None else baseline)
        else:
            yield from _iter_strings(child, baseline)


def _read_page(page_el: ET.Element) -> _RawPage:
    strings: list[_RawString] = []
    for s, baseline in _iter_strings(page_el, None):
        text = s.get("CONTENT")
        if text is None or text.strip() == "":
            continue
        values = [_num(s.get(a)) for a in _GEOMETRY_ATTRS]
        missing = tuple(a for a, v in zip(_GEOMETRY_ATTRS, values) if v is None)
        hpos, vpos, width, height = (0.0 if v is None else v for v in values)
        strings.append(
            _RawString(
                text=text,
                hpos=hpos,
                vpos=vpos,
                width=width,
                height=height,
                baseline=baseline,
                missing=missing,
            )
        )

    def _positive(v: float | None) -> float | None:
        return v if v is not None and v > 0 else None

    return _RawPage(
        declared_width=_positive(_num(page_el.get("WIDTH"))),
        declared_height=_positive(_num(page_el.get("HEIGHT"))),
        strings=strings,
    )


def _repair(s: _RawString) -> tuple[float, float, float, float, bool]:
    x, w = (s.hpos, s.width) if s.width >= 0 else (s.hpos + s.width, -s.width)
    y, h = (s.vpos, s.height) if s.height >= 0 else (s.vpos + s.height, -s.height)
    return x, y, w, h, (w != s.width or h != s.height)


def _inferred_size(raw: _RawPage) -> tuple[float, float] | None:
    if not raw.strings:
        return None
    max_x = 0.0
    max_y = 0.0
    for s in raw.strings:
        x, y, w, h, _ = _repair(s)
        max_x = max(max_x, x + w)
        max_y = max(max_y, y + h)
    return (max_x, max_y) if max_x > 0 and max_y > 0 else None


def _build_page(
    *,
    index: int,
    raw: _RawPage,
    width: float,
    height: float,
    origin: Origin,
    warnings: list[Diagnostic],
) -> Page:
    fragments: list[RawFragment] = []
    for s in raw.strings:
        hint_index = len(fragments)
        detail = {"page": index, "hint_index": hint_index, "text": s.text}

        if s.missing:
            warnings.append(
                layout_warning(
                    MISSING_GEOMETRY,
                    "Fragment geometry attributes missing or non-numeric; read as 0.",
                    {**detail, "attributes": list(s.missing)},
                )
            )

        x, y, w, h, repaired = _repair(s)
        if repaired:
            warnings.append(
                layout_warning(BBOX_REPAIRED, "Negative fragment extent was flipped.", detail)
            )

        baseline = s.baseline
        if origin == Origin.BOTTOM_LEFT:
            y = height - (y + h)
            if baseline is not None:
                baseline = height - baseline

        x0 = _clamp(x, 0.0, width)
        y0 = _clamp(y, 0.0, height)
        x1 = _clamp(x + w, 0.0, width)
        y1 = _clamp(y + h, 0.0, height)
        if (x0, y0, x1, y1) != (x, y, x + w, y + h):
            warnings.append(
                layout_warning(
                    FRAGMENT_CLAMPED,
                    "Fragment extended outside the page and was clamped.",
                    {**detail, "original": {"x": x, "y": y, "width": w, "height": h}},
                )
            )

        bbox = BBox(x=x0, y=y0, width=x1 - x0, height=y1 - y0)
        fragments.append(
            RawFragment(
                bbox=bbox,
                text=s.text,
                hint_index=hint_index,
                baseline=bbox.y1 if baseline is None else _clamp(baseline, 0.0, height),
            )
        )

    return Page(index=index, width=width, height=height, fragments=tuple(fragments))


def parse_alto(
    data: bytes | str,
    config: ParserConfig | None = None,
    *,
    source: str | None = None,
) -> ParseResult:
    """
    Parse an ALTO positioned-text description into a Document.

    Tolerant of the format's loose validation: unknown elements and
    attributes are ignored, missing geometry reads as zero and is reported as a
    warning. Only whole-document problems fail the parse.
    """

    config = config or ParserConfig()
    config.validate()
    meta: dict[str, Any] = {"format": "alto", "parser_config": config.to_dict(), "source": source}

    def _fail(err: Diagnostic) -> ParseResult:
        logger.warning("parse failed for %s: %s", source or "<memory>", err.message)
        return ParseResult(ok=False, document=None, errors=[err], warnings=[], meta=meta)

    if isinstance(data, bytes):
        try:
            text = _decode(data)
        except (UnicodeDecodeError, LookupError) as e:
            return _fail(parse_error(PARSE_ENCODING_ERROR, "Description is not decodable", {"reason": str(e)}))
    else:
        text = data

    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        return _fail(parse_error(PARSE_MALFORMED_STRUCTURE, "Description is not well-formed XML", {"reason": str(e)}))

    page_els = [el for el in root.iter() if _local(el.tag) == "Page"]
    if not page_els:
        return _fail(parse_error(PARSE_MALFORMED_STRUCTURE, "Description contains no Page elements"))

    raw_pages = [_read_page(el) for el in page_els]
    if not any(rp.strings for rp in raw_pages):
        return _fail(
            parse_error(
                PARSE_MALFORMED_STRUCTURE,
                "No page yields any text fragment",
                {"pages": len(raw_pages)},
            )
        )

    # Document-wide fallback size: first declared, else first inferable, else config.
    default_size: tuple[float, float] | None = None
    for rp in raw_pages:
        if rp.declared_width is not None and rp.declared_height is not None:
            default_size = (rp.declared_width, rp.declared_height)
            break
    if default_size is None:
        default_size = next((s for s in map(_inferred_size, raw_pages) if s is not None), None)
    if default_size is None:
        default_size = config.fallback_page_size
    if default_size is None:
        return _fail(
            parse_error(
                PARSE_MISSING_GEOMETRY,
                "No page declares a size and none can be inferred from its fragments",
                {"pages": len(raw_pages)},
            )
        )

    warnings: list[Diagnostic] = []
    pages: list[Page] = []
    for index, rp in enumerate(raw_pages):
        width, height = rp.declared_width, rp.declared_height
        if width is None or height is None:
            inferred = _inferred_size(rp) or default_size
            width = width if width is not None else inferred[0]
            height = height if height is not None else inferred[1]
            warnings.append(
                layout_warning(
                    PAGE_SIZE_INFERRED,
                    "Page size missing or invalid; inferred.",
                    {"page": index, "width": width, "height": height},
                )
            )
        pages.append(
            _build_page(index=index, raw=rp, width=width, height=height, origin=config.origin, warnings=warnings)
        )

    meta["counts"] = {
        "pages": len(pages),
        "fragments": sum(len(p.fragments) for p in pages),
        "warnings": len(warnings),
    }
    logger.info(
        "parsed %s: %d pages, %d fragments, %d warnings",
        source or "<memory>",
        meta["counts"]["pages"],
        meta["counts"]["fragments"],
        len(warnings),
    )
    return ParseResult(
        ok=True,
        document=Document(pages=tuple(pages), source=source, meta={"parser": meta}),
        errors=[],
        warnings=warnings,
        meta=meta,
    )
