"""
PDF -> ALTO layout description.

Backends:
- `pdfalto_cli`: the external `pdfalto` converter (default)
- `pypdfium2`: in-process text-layer reader

This package only converts. It does no reading-order work and never repairs
text; failures are reported as ConversionError diagnostics.
"""

from .contracts import ExtractConfig, ExtractEngineName, ExtractResult
from .module import run_extraction

__all__ = ["ExtractConfig", "ExtractEngineName", "ExtractResult", "run_extraction"]
