from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from ..contracts import ExtractConfig, ExtractResult


class ExtractEngine(ABC):
    """
    Interface for PDF -> ALTO extraction backends.

    IMPORTANT:
    - Engines must report fragments and their boxes exactly as the PDF text
      layer provides them.
    - Engines must NOT reorder, merge or correct text.
    - Expected failures are returned as ConversionError diagnostics, not raised.
    """

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def run_on_pdf_file(self, *, config: ExtractConfig, pdf_file: Path) -> ExtractResult:
        raise NotImplementedError
