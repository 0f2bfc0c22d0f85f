from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class BBox:
    """
    Page-unit rectangle, top-left origin (normalized by the parser):
    - (x, y) is the top-left corner
    - width/height are never negative
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def x1(self) -> float:
        return self.x + self.width

    @property
    def y1(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2.0

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2.0

    def union(self, other: "BBox") -> "BBox":
        x0 = min(self.x, other.x)
        y0 = min(self.y, other.y)
        x1 = max(self.x1, other.x1)
        y1 = max(self.y1, other.y1)
        return BBox(x=x0, y=y0, width=x1 - x0, height=y1 - y0)

    def x_overlap(self, other: "BBox") -> float:
        return max(0.0, min(self.x1, other.x1) - max(self.x, other.x))

    def y_overlap(self, other: "BBox") -> float:
        return max(0.0, min(self.y1, other.y1) - max(self.y, other.y))

    @staticmethod
    def union_many(boxes: list["BBox"]) -> "BBox":
        if not boxes:
            return BBox(0.0, 0.0, 0.0, 0.0)
        out = boxes[0]
        for b in boxes[1:]:
            out = out.union(b)
        return out

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "BBox":
        return BBox(x=float(d["x"]), y=float(d["y"]), width=float(d["width"]), height=float(d["height"]))

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}
