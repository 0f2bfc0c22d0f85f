from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any


@dataclass(frozen=True, slots=True)
class MapperConfig:
    """
    Page -> grid mapping parameters.

    `cell_aspect` is the height/width ratio of one terminal cell. It depends on
    the terminal font, so it is tunable. The page height never overflows the
    requested rows; None disables aspect correction and stretches the page
    height over them.
    """

    cell_aspect: float | None = 2.0
    # Characters outside the printable range are drawn as this.
    replacement_char: str = "?"

    def validate(self) -> None:
        if self.cell_aspect is not None and self.cell_aspect <= 0:
            raise ValueError("cell_aspect must be > 0 (or None)")
        if len(self.replacement_char) != 1 or not self.replacement_char.isprintable():
            raise ValueError("replacement_char must be a single printable character")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "MapperConfig":
        known = {f.name for f in fields(MapperConfig)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ValueError(f"Unknown mapper config keys: {unknown}")
        return MapperConfig(**d)
