"""
Layers of a 2D map: tile grids and item lists

=============================================================================
TWO KINDS OF LAYER
=============================================================================

A Map2D is a stack of layers, drawn first to last (first = furthest back).
Each layer is one of two kinds:

TiledLayer ("2d.tiled"):
    A dense grid of tile codes, accessed as tiles[y][x].

        +----+----+----+
        | 12 |None| 12 |      None = no tile in this cell
        +----+----+----+
        |  3 |  3 |  3 |
        +----+----+----+

ListLayer ("2d.list"):
    A sparse list of Items at arbitrary positions (actors, enemies).

There is no common base class.  Code that handles "any layer" checks
`layer.kind` (or isinstance) like it would for any tagged union.

=============================================================================
FORMAT-SPECIFIC BEHAVIOUR
=============================================================================

Format handlers do not subclass layers.  Instead each layer carries a
LayerBehaviour, a small table of functions the handler fills in:

    permits(layer, x, y, code) -> Permission
        Can `code` be placed at tile (x, y)?  An editor calls this every
        time the cursor moves, so it must be cheap.

    image_from_code(code) -> TileImage
        How an external renderer should show a code.

=============================================================================
HANDLER-PRIVATE DATA
=============================================================================

`extra` is a dict the format handler may use to carry bytes from parse() to
generate() that have no place in the generic model (padding, data after a
terminator, ...).  Editors should leave it alone.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Optional, Union

from .geometry import Point
from .item import DrawOp, Item


# =============================================================================
# BEHAVIOUR TABLE
# =============================================================================

@dataclass
class Permission:
    """Answer from is_permitted_at(); truthy when the placement is valid."""
    valid: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


@dataclass
class Arrows:
    left: bool = False
    right: bool = False
    up: bool = False
    down: bool = False


@dataclass
class TileImage:
    """
    How to show a code.

    digit:           hex number to overlay (0x10..0x1F = one digit 0..F,
                     0x100..0x1FF = two digits, 0x10000..0x1FFFF = four),
                     or None
    composite_image: images to draw on top of each other, or None
    arrows:          movement hints to overlay
    """
    digit: Optional[int] = None
    composite_image: Optional[List[DrawOp]] = None
    arrows: Arrows = field(default_factory=Arrows)


def permit_within_grid(layer: 'TiledLayer', x: int, y: int, code: Any) -> Permission:
    """Default placement rule: any code, anywhere inside the grid."""
    size = layer.grid_size()
    if 0 <= x < size.x and 0 <= y < size.y:
        return Permission(True)
    return Permission(False, f"({x}, {y}) is outside the {size} layer.")


def image_from_int_code(code: Any) -> TileImage:
    """Default display rule: integer codes index straight into the tileset."""
    if code is None:
        return TileImage()
    if isinstance(code, int):
        return TileImage(composite_image=[DrawOp(image=code)])
    return TileImage(composite_image=[DrawOp(text=str(code))])


@dataclass
class LayerBehaviour:
    permits: Callable[['TiledLayer', int, int, Any], Permission] = permit_within_grid
    image_from_code: Callable[[Any], TileImage] = image_from_int_code


# =============================================================================
# TILED LAYER
# =============================================================================

@dataclass
class TiledLayerLimits:
    """
    Size limits for a tiled layer.

    For layers that cannot be resized the minimum and maximum are equal.
    A maximum of None means no limit.
    """
    minimum_layer_size: Point = Point(1, 1)
    maximum_layer_size: Optional[Point] = None
    minimum_tile_size: Point = Point(1, 1)
    maximum_tile_size: Optional[Point] = None


@dataclass
class TiledLayer:
    """
    Grid of tile codes.

    `layer_size` and `tile_size` are None when the layer inherits the
    map's `map_size` / `tile_size`.
    """
    kind: ClassVar[str] = "2d.tiled"

    title: str = "?"
    tiles: List[List[Any]] = field(default_factory=list)
    layer_size: Optional[Point] = None
    tile_size: Optional[Point] = None
    offset: Point = Point(0, 0)                      # Pixels from map origin
    limits: TiledLayerLimits = field(default_factory=TiledLayerLimits)
    behaviour: LayerBehaviour = field(default_factory=LayerBehaviour)
    extra: Dict[str, Any] = field(default_factory=dict)

    def grid_size(self) -> Point:
        """Actual dimensions of `tiles` (width of the first row)."""
        if not self.tiles:
            return Point(0, 0)
        return Point(len(self.tiles[0]), len(self.tiles))

    def effective_size(self, map_size: Optional[Point]) -> Optional[Point]:
        """Size this layer must have: its own, else the map's."""
        return self.layer_size if self.layer_size is not None else map_size

    def size_problem(self, map_size: Optional[Point]) -> Optional[str]:
        """
        Check the grid against the effective size.

        Returns:
        --------
        str or None : description of the mismatch, None if the grid fits
        """
        expected = self.effective_size(map_size)
        if expected is None:
            return None
        if len(self.tiles) != expected.y:
            return (f"Layer '{self.title}' has {len(self.tiles)} rows of tiles "
                    f"but should have {expected.y}.")
        for y, row in enumerate(self.tiles):
            if len(row) != expected.x:
                return (f"Row {y} of layer '{self.title}' has {len(row)} tiles "
                        f"but should have {expected.x}.")
        return None

    def get_tile(self, x: int, y: int) -> Any:
        """Code at (x, y); None when out of bounds or empty."""
        if 0 <= y < len(self.tiles) and 0 <= x < len(self.tiles[y]):
            return self.tiles[y][x]
        return None

    def set_tile(self, x: int, y: int, code: Any):
        """Set the code at (x, y).  Out-of-bounds writes raise IndexError."""
        if not (0 <= y < len(self.tiles) and 0 <= x < len(self.tiles[y])):
            raise IndexError(f"({x}, {y}) is outside layer '{self.title}'.")
        self.tiles[y][x] = code

    def is_permitted_at(self, x: int, y: int, code: Any) -> Permission:
        return self.behaviour.permits(self, x, y, code)

    def image_from_code(self, code: Any) -> TileImage:
        return self.behaviour.image_from_code(code)

    def resize_grid(self, new_size: Point, fill: Any = None):
        """Crop or pad `tiles` in place, keeping each tile at its (x, y)."""
        rows = [list(row[:new_size.x]) for row in self.tiles[:new_size.y]]
        for row in rows:
            row.extend([fill] * (new_size.x - len(row)))
        while len(rows) < new_size.y:
            rows.append([fill] * new_size.x)
        self.tiles = rows


# =============================================================================
# LIST LAYER
# =============================================================================

@dataclass
class ListLayerLimits:
    """Item coordinates must be >= minimum and <= maximum (None = no limit)."""
    minimum: Point = Point(0, 0)
    maximum: Optional[Point] = None


@dataclass
class ListLayer:
    """Ordered list of Items at arbitrary positions."""
    kind: ClassVar[str] = "2d.list"

    title: str = "?"
    items: List[Item] = field(default_factory=list)
    coordinates: str = "pixel"                       # "pixel" or "tile"
    offset: Point = Point(0, 0)
    limits: ListLayerLimits = field(default_factory=ListLayerLimits)
    behaviour: LayerBehaviour = field(default_factory=LayerBehaviour)
    extra: Dict[str, Any] = field(default_factory=dict)

    def image_from_code(self, code: Any) -> TileImage:
        return self.behaviour.image_from_code(code)

    def within_limits(self, item: Item) -> bool:
        """True if the item has integer coordinates inside the layer limits."""
        if not isinstance(item.x, int) or not isinstance(item.y, int):
            return False
        low, high = self.limits.minimum, self.limits.maximum
        if item.x < low.x or item.y < low.y:
            return False
        return high is None or (item.x <= high.x and item.y <= high.y)

    def position_problems(self) -> List[str]:
        """Describe every item outside this layer's coordinate limits."""
        issues = []
        for index, item in enumerate(self.items):
            if not isinstance(item.x, int) or not isinstance(item.y, int):
                issues.append(
                    f"Item #{index + 1} in layer '{self.title}' does not have "
                    f"integer coordinates."
                )
                continue
            if not self.within_limits(item):
                issues.append(
                    f"Item #{index + 1} ({item.code}) in layer '{self.title}' is "
                    f"at ({item.x}, {item.y}), outside the permitted area."
                )
        return issues


Layer = Union[TiledLayer, ListLayer]
