from typing import NamedTuple


class Position(NamedTuple):
    """Pixel coordinate on the canvas"""
    x: int
    y: int

    def __add__(self, other: "Position") -> "Position":
        return Position(self.x + other.x, self.y + other.y)

    def exceeds(self, bound: "Position") -> bool:
        """True when the position reaches the bound on either axis (bound is exclusive)"""
        return self.x >= bound.x or self.y >= bound.y


class Color(NamedTuple):
    """Opaque RGB888 color"""
    r: int
    g: int
    b: int
