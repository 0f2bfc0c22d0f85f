"""
Coordinate Mapper: resolved page geometry -> fixed-size character grid.
"""

from .config import MapperConfig
from .mapper import map_lines_to_grid, map_page_to_grid, message_grid, natural_rows, scale_factors
from .text import TextConfig, materialize_text

__all__ = [
    "MapperConfig",
    "TextConfig",
    "map_lines_to_grid",
    "map_page_to_grid",
    "materialize_text",
    "message_grid",
    "natural_rows",
    "scale_factors",
]
