from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class DiagnosticKind(str, Enum):
    """
    Error taxonomy shared by every stage.

    CONVERSION and PARSE are fatal for the current load; LAYOUT_WARNING never
    aborts rendering.
    """

    CONVERSION = "ConversionError"
    PARSE = "ParseError"
    LAYOUT_WARNING = "LayoutWarning"


# ConversionError codes
CONVERSION_INPUT_NOT_FOUND = "CONVERSION_INPUT_NOT_FOUND"
CONVERSION_BACKEND_NOT_INSTALLED = "CONVERSION_BACKEND_NOT_INSTALLED"
CONVERSION_TIMEOUT = "CONVERSION_TIMEOUT"
CONVERSION_BACKEND_ERROR = "CONVERSION_BACKEND_ERROR"
CONVERSION_NO_OUTPUT = "CONVERSION_NO_OUTPUT"

# ParseError codes
PARSE_ENCODING_ERROR = "PARSE_ENCODING_ERROR"
PARSE_MALFORMED_STRUCTURE = "PARSE_MALFORMED_STRUCTURE"
PARSE_MISSING_GEOMETRY = "PARSE_MISSING_GEOMETRY"

# LayoutWarning codes
MISSING_GEOMETRY = "MISSING_GEOMETRY"
BBOX_REPAIRED = "BBOX_REPAIRED"
FRAGMENT_CLAMPED = "FRAGMENT_CLAMPED"
PAGE_SIZE_INFERRED = "PAGE_SIZE_INFERRED"
DEGENERATE_CLUSTERING = "DEGENERATE_CLUSTERING"
OVERLAPPING_WORD_DROPPED = "OVERLAPPING_WORD_DROPPED"
WORD_CLIPPED = "WORD_CLIPPED"
WORD_DROPPED_OFF_GRID = "WORD_DROPPED_OFF_GRID"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    kind: DiagnosticKind
    code: str
    message: str
    detail: dict[str, Any] | None = None

    @property
    def is_fatal(self) -> bool:
        return self.kind != DiagnosticKind.LAYOUT_WARNING

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "detail": None if self.detail is None else dict(self.detail),
        }


def conversion_error(code: str, message: str, detail: dict[str, Any] | None = None) -> Diagnostic:
    return Diagnostic(kind=DiagnosticKind.CONVERSION, code=code, message=message, detail=detail)


def parse_error(code: str, message: str, detail: dict[str, Any] | None = None) -> Diagnostic:
    return Diagnostic(kind=DiagnosticKind.PARSE, code=code, message=message, detail=detail)


def layout_warning(code: str, message: str, detail: dict[str, Any] | None = None) -> Diagnostic:
    return Diagnostic(kind=DiagnosticKind.LAYOUT_WARNING, code=code, message=message, detail=detail)
