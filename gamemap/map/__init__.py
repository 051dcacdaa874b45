"""Format-independent map model"""

from .geometry import Point
from .attribute import Attribute, AttributeType
from .item import (
    ComputedDisplay, Display, DrawOp, Icon, Item, ItemOptions, StaticDisplay,
)
from .layer import (
    Arrows, Layer, LayerBehaviour, ListLayer, ListLayerLimits, Permission,
    TiledLayer, TiledLayerLimits, TileImage,
)
from .map2d import (
    PALETTE_UNSET, Background, BackgroundAttachment, Map, Map2D,
    MapBehaviour, MapLimits,
)

__all__ = [
    "Point",
    "Attribute", "AttributeType",
    "ComputedDisplay", "Display", "DrawOp", "Icon", "Item", "ItemOptions",
    "StaticDisplay",
    "Arrows", "Layer", "LayerBehaviour", "ListLayer", "ListLayerLimits",
    "Permission", "TiledLayer", "TiledLayerLimits", "TileImage",
    "PALETTE_UNSET", "Background", "BackgroundAttachment", "Map", "Map2D",
    "MapBehaviour", "MapLimits",
]
