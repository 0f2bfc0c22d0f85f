from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from alto_parse import ParserConfig
from extract import ExtractConfig
from grid_map import MapperConfig, TextConfig
from reading_order import ResolverConfig

_SECTIONS = ("parser", "layout", "mapping", "text", "extract")


@dataclass(frozen=True, slots=True)
class ViewerConfig:
    """
    One config object per stage, grouped for the viewer.

    A JSON file may override any section; keys inside a section are the
    stage config's field names.
    """

    parser: ParserConfig = field(default_factory=ParserConfig)
    layout: ResolverConfig = field(default_factory=ResolverConfig)
    mapping: MapperConfig = field(default_factory=MapperConfig)
    text: TextConfig = field(default_factory=TextConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)

    def validate(self) -> None:
        self.parser.validate()
        self.layout.validate()
        self.mapping.validate()
        self.text.validate()
        self.extract.validate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "parser": self.parser.to_dict(),
            "layout": self.layout.to_dict(),
            "mapping": self.mapping.to_dict(),
            "text": self.text.to_dict(),
            "extract": self.extract.to_dict(),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ViewerConfig":
        unknown = sorted(set(d) - set(_SECTIONS))
        if unknown:
            raise ValueError(f"Unknown config sections: {unknown}")
        for name in _SECTIONS:
            if name in d and not isinstance(d[name], dict):
                raise ValueError(f"Config section {name!r} must be an object")
        cfg = ViewerConfig(
            parser=ParserConfig.from_dict(d.get("parser", {})),
            layout=ResolverConfig.from_dict(d.get("layout", {})),
            mapping=MapperConfig.from_dict(d.get("mapping", {})),
            text=TextConfig.from_dict(d.get("text", {})),
            extract=ExtractConfig.from_dict(d.get("extract", {})),
        )
        cfg.validate()
        return cfg


def load_config_file(path: Path) -> ViewerConfig:
    """Read a JSON config file. Raises ValueError on unreadable or invalid content."""

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Config file {path} is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must hold a JSON object")
    return ViewerConfig.from_dict(raw)
