"""Small value types shared by the map model"""

from typing import NamedTuple


class Point(NamedTuple):
    """
    An (x, y) pair.

    Used for positions, sizes and path waypoints.  Whether the unit is
    pixels or tiles depends on where it is used.
    """
    x: int
    y: int

    def __str__(self) -> str:
        return f"{self.x}x{self.y}"
