"""
Root map objects: Map and the grid-based Map2D

=============================================================================
LIFECYCLE
=============================================================================

    bytes --handler.parse()--> Map2D --(editing)--> handler.generate() --> bytes

Maps are created fresh by a format handler's parse(), may be edited in
place, and are thrown away after generate().  Nothing is cached between
calls; two maps never share mutable state.

=============================================================================
MAP2D STRUCTURE
=============================================================================

    Map2D
    ├── metadata            free-form descriptive info
    ├── attributes          level-wide settings (Attribute objects)
    ├── item_attributes     schema for Item.attribute_values
    ├── palette             None / PALETTE_UNSET / palette object
    ├── paths               None (unsupported) or list of point lists
    ├── viewport            pixels visible in-game
    ├── background          how to fill behind the layers
    ├── map_size            grid size shared by size-inheriting layers
    ├── tile_size           grid cell size in pixels
    ├── limits              minimum/maximum map size
    ├── behaviour           format hooks for resizing
    └── layers[]            TiledLayer / ListLayer, back to front

=============================================================================
RESIZING
=============================================================================

Resizing is a two-step protocol:

    permitted = map.query_resize(Point(300, 100))
    # ... show `permitted` to the user ...
    map.resize(permitted)

query_resize() never fails: it clamps the proposal to the limits and lets
the format adjust it (Cosmo has a fixed number of tiles, so widening the
map makes it shorter).  resize() refuses any size that query_resize()
would change.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional

from ..errors import UnsupportedOperationError
from .attribute import Attribute
from .geometry import Point
from .layer import Layer, TiledLayer

logger = logging.getLogger(__name__)


class _PaletteUnset:
    """Marker: this map supports a custom palette but none is set yet."""

    def __repr__(self) -> str:
        return "PALETTE_UNSET"


PALETTE_UNSET = _PaletteUnset()


# =============================================================================
# MAP
# =============================================================================

@dataclass
class Map:
    """
    Format-independent map.

    Only format handlers add or remove entries in `attributes` and
    `item_attributes`; anyone may change an attribute's `value`.
    """
    metadata: Dict[str, Any] = field(default_factory=dict)
    attributes: Dict[str, Attribute] = field(default_factory=dict)
    item_attributes: Dict[str, Attribute] = field(default_factory=dict)
    palette: Any = None                              # None = unsupported
    paths: Optional[List[List[Point]]] = None        # None = unsupported


# =============================================================================
# MAP2D
# =============================================================================

class BackgroundAttachment(IntEnum):
    """How the map background is drawn behind the level."""
    NONE = 0                     # Transparent
    SINGLE_IMAGE_CENTRED = 1     # `image` centred in the viewport
    SINGLE_IMAGE_TILED = 2       # `image` repeated to fill the largest layer
    SOLID_COLOUR = 3             # Solid palette colour `colour`


@dataclass
class Background:
    attachment: BackgroundAttachment = BackgroundAttachment.NONE
    colour: Optional[int] = None                     # Palette index
    code: Any = None                                 # Tile code used as image
    image: Any = None                                # External image object


@dataclass
class MapLimits:
    minimum_map_size: Point = Point(1, 1)
    maximum_map_size: Optional[Point] = None         # None = no limit


def keep_size(map2d: 'Map2D', proposed: Point) -> Point:
    return proposed


@dataclass
class MapBehaviour:
    """
    Format hooks for a Map2D.

    adjust_size(map, clamped) -> Point
        Final say over a proposed size, after clamping to the limits.
    resizable
        False if the format stores a single fixed size.
    """
    adjust_size: Callable[['Map2D', Point], Point] = keep_size
    resizable: bool = True


@dataclass
class Map2D(Map):
    """Grid-based 2D map made of stacked layers."""
    kind = "map2d"

    # The default viewport is deliberately tiny so a handler that forgets
    # to set it is obvious.
    viewport: Point = Point(16, 16)
    background: Background = field(default_factory=Background)
    map_size: Optional[Point] = None
    tile_size: Optional[Point] = None
    limits: MapLimits = field(default_factory=MapLimits)
    behaviour: MapBehaviour = field(default_factory=MapBehaviour)
    layers: List[Layer] = field(default_factory=list)

    def tiled_layers(self) -> List[TiledLayer]:
        return [layer for layer in self.layers if isinstance(layer, TiledLayer)]

    def get_size(self) -> Optional[Point]:
        """
        Size of the whole map in pixels.

        Returns the extent of the largest tiled layer (offset included), or
        None if the map has no tiled layers or their tile size is unknown.
        """
        width = height = None
        for layer in self.tiled_layers():
            size = layer.effective_size(self.map_size) or layer.grid_size()
            tile = layer.tile_size or self.tile_size
            if tile is None:
                continue
            w = layer.offset.x + size.x * tile.x
            h = layer.offset.y + size.y * tile.y
            width = w if width is None else max(width, w)
            height = h if height is None else max(height, h)
        if width is None:
            return None
        return Point(width, height)

    def query_resize(self, proposed: Point) -> Point:
        """
        Find the closest size to `proposed` that the map can take.

        Always returns a Point, clamped to `limits` and then adjusted by the
        format's `behaviour.adjust_size` hook.
        """
        low = self.limits.minimum_map_size
        high = self.limits.maximum_map_size
        x, y = proposed
        if high is not None:
            x = min(x, high.x)
            y = min(y, high.y)
        x = max(x, low.x)
        y = max(y, low.y)
        return Point(*self.behaviour.adjust_size(self, Point(x, y)))

    def resize(self, new_size: Point):
        """
        Change `map_size` and crop/pad every layer that inherits it.

        Raises:
        -------
        UnsupportedOperationError : the format cannot be resized
        ValueError : `new_size` was not first passed through query_resize()
        """
        if not self.behaviour.resizable:
            raise UnsupportedOperationError("This map format cannot be resized.")
        new_size = Point(*new_size)
        permitted = self.query_resize(new_size)
        if permitted != new_size:
            raise ValueError(
                f"Requested map size {new_size} is invalid, the closest "
                f"permitted size is {permitted}."
            )
        logger.debug("Resizing map from %s to %s", self.map_size, new_size)
        self.map_size = new_size
        for layer in self.tiled_layers():
            if layer.layer_size is None:
                layer.resize_grid(new_size)
