from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Any

from contracts.diagnostics import (
    CONVERSION_BACKEND_ERROR,
    CONVERSION_BACKEND_NOT_INSTALLED,
    CONVERSION_INPUT_NOT_FOUND,
    CONVERSION_NO_OUTPUT,
    CONVERSION_TIMEOUT,
    conversion_error,
)

from ..contracts import ExtractConfig, ExtractEngineName, ExtractResult
from .base import ExtractEngine

logger = logging.getLogger(__name__)

_OUT_NAME = "out.xml"


def build_command(*, config: ExtractConfig, pdf_file: Path, out_file: Path) -> list[str]:
    cmd = [config.pdfalto_binary, "-noImage", "-noLineNumbers"]
    if config.reading_order:
        cmd.append("-readingOrder")
    if config.first_page is not None:
        cmd.extend(["-f", str(config.first_page)])
    if config.last_page is not None:
        cmd.extend(["-l", str(config.last_page)])
    cmd.extend([str(pdf_file), str(out_file)])
    return cmd


class PdfaltoCliEngine(ExtractEngine):
    """
    ALTO extraction via the external `pdfalto` binary.

    Output goes to a private temporary directory that is removed on every
    exit path, including timeouts and crashes of the child process.
    """

    def backend_id(self) -> str:
        return "pdfalto"

    def _fail(self, code: str, message: str, detail: dict[str, Any], meta: dict[str, Any]) -> ExtractResult:
        logger.warning("pdfalto failed: %s (%s)", message, code)
        return ExtractResult(
            ok=False,
            engine=ExtractEngineName.PDFALTO_CLI,
            description=None,
            errors=[conversion_error(code, message, detail)],
            meta=meta,
        )

    def run_on_pdf_file(self, *, config: ExtractConfig, pdf_file: Path) -> ExtractResult:
        meta: dict[str, Any] = {
            "backend": self.backend_id(),
            "reading_order": config.reading_order,
            "first_page": config.first_page,
            "last_page": config.last_page,
        }

        if not pdf_file.is_file():
            return self._fail(
                CONVERSION_INPUT_NOT_FOUND,
                "Input PDF file not found",
                {"pdf_file": str(pdf_file)},
                meta,
            )

        with tempfile.TemporaryDirectory(prefix="pdf-text-grid-") as tmp:
            out_file = Path(tmp) / _OUT_NAME
            cmd = build_command(config=config, pdf_file=pdf_file, out_file=out_file)
            # Keep meta portable: no absolute temp paths.
            meta["command_template"] = [*cmd[:-2], "<PDF_FILE>", "<OUT_FILE>"]
            logger.debug("running %s", cmd)

            try:
                proc = subprocess.run(
                    cmd,
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=config.timeout_s,
                )
            except FileNotFoundError:
                return self._fail(
                    CONVERSION_BACKEND_NOT_INSTALLED,
                    f"{config.pdfalto_binary} binary not found on PATH",
                    {"expected_command": config.pdfalto_binary},
                    meta,
                )
            except subprocess.TimeoutExpired:
                return self._fail(
                    CONVERSION_TIMEOUT,
                    "pdfalto timed out",
                    {"timeout_s": config.timeout_s},
                    meta,
                )

            if proc.returncode != 0:
                return self._fail(
                    CONVERSION_BACKEND_ERROR,
                    "pdfalto returned a non-zero exit code",
                    {"returncode": proc.returncode, "stderr": proc.stderr[-4000:]},
                    meta,
                )

            if not out_file.is_file() or out_file.stat().st_size == 0:
                return self._fail(
                    CONVERSION_NO_OUTPUT,
                    "pdfalto produced no layout description",
                    {"stderr": proc.stderr[-4000:]},
                    meta,
                )

            description = out_file.read_bytes()

        logger.info("pdfalto: %d bytes of ALTO from %s", len(description), pdf_file.name)
        return ExtractResult(
            ok=True,
            engine=ExtractEngineName.PDFALTO_CLI,
            description=description,
            errors=[],
            meta=meta,
        )
