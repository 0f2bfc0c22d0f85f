from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Sequence

from contracts.lines import ReconstructedLine


@dataclass(frozen=True, slots=True)
class TextConfig:
    """Spacing rules for the plain-text rendition (page units, not cells)."""

    section_gap: float = 15.0
    gap_per_blank_line: float = 12.0
    max_blank_lines: int = 3
    word_gap: float = 3.0
    gap_per_space: float = 8.0
    max_spaces: int = 10

    def validate(self) -> None:
        if self.section_gap < 0 or self.word_gap < 0:
            raise ValueError("section_gap and word_gap must be >= 0")
        if self.gap_per_blank_line <= 0 or self.gap_per_space <= 0:
            raise ValueError("gap_per_blank_line and gap_per_space must be > 0")
        if self.max_blank_lines < 1 or self.max_spaces < 1:
            raise ValueError("max_blank_lines and max_spaces must be >= 1")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "TextConfig":
        known = {f.name for f in fields(TextConfig)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ValueError(f"Unknown text config keys: {unknown}")
        return TextConfig(**d)


def _line_text(line: ReconstructedLine, config: TextConfig) -> str:
    parts: list[str] = []
    prev = None
    for word in line.words:
        if prev is not None:
            gap = word.bbox.x - prev.bbox.x1
            spaces = 1
            if gap > config.word_gap:
                spaces = max(1, min(config.max_spaces, int(gap / config.gap_per_space)))
            parts.append(" " * spaces)
        parts.append(word.text)
        prev = word
    return "".join(parts)


def materialize_text(lines: Sequence[ReconstructedLine], config: TextConfig | None = None) -> str:
    """
    Flow a resolved page into plain text.

    Lines come out in reading order. Wide vertical gaps become blank lines and
    wide horizontal gaps become runs of spaces, so section breaks and tab-like
    alignment survive a copy/paste.
    """

    config = config or TextConfig()
    config.validate()

    out: list[str] = []
    prev: ReconstructedLine | None = None
    for line in sorted(lines, key=lambda ln: ln.reading_rank):
        if prev is not None:
            if line.column != prev.column:
                out.append("")
            else:
                gap = line.bbox.y - prev.bbox.y1
                if gap > config.section_gap:
                    blank = max(1, min(config.max_blank_lines, int(gap / config.gap_per_blank_line)))
                    out.extend([""] * blank)
        out.append(_line_text(line, config))
        prev = line
    return "\n".join(out) + ("\n" if out else "")
