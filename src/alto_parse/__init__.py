"""
Layout Parser: ALTO positioned-text description -> Document.

Pages keep their fragments in description order (`hint_index`); no reading
order is inferred here.
"""

from .contracts import Origin, ParserConfig, ParseResult
from .parser import parse_alto

__all__ = ["Origin", "ParserConfig", "ParseResult", "parse_alto"]
