from __future__ import annotations

import logging
from pathlib import Path

from .contracts import ExtractConfig, ExtractEngineName, ExtractResult
from .engines.base import ExtractEngine
from .engines.pdfalto_cli import PdfaltoCliEngine
from .engines.pypdfium2_engine import Pypdfium2Engine

logger = logging.getLogger(__name__)


def _get_engine(engine: ExtractEngineName) -> ExtractEngine:
    if engine == ExtractEngineName.PDFALTO_CLI:
        return PdfaltoCliEngine()
    if engine == ExtractEngineName.PYPDFIUM2:
        return Pypdfium2Engine()
    raise ValueError(f"Unsupported extraction engine: {engine}")


def run_extraction(*, config: ExtractConfig, pdf_file: Path) -> ExtractResult:
    """
    Turn a PDF into an ALTO layout description with the configured engine.

    Invalid configuration raises ValueError; every runtime failure comes back
    as a ConversionError inside the result.
    """

    config.validate()
    engine = _get_engine(config.engine)
    logger.info("extracting %s with %s", pdf_file.name, engine.backend_id())
    return engine.run_on_pdf_file(config=config, pdf_file=pdf_file)
