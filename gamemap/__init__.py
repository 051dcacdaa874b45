"""
gamemap - read, edit and write the level files of classic DOS games

    from gamemap import get_handler

    handler = get_handler('map-cosmo')
    map = handler.parse({'main': open('a1.mni', 'rb').read()})
    map.attributes['bgmusic'].value = 3
    if not handler.check_limits(map):
        output = handler.generate(map)
"""

from .errors import (
    AttributeValueError, FormatError, GameMapError, OutOfBoundsError,
    UnknownFormatError, UnsupportedOperationError,
)
from .record import RecordBuffer, RecordType
from .map import (
    Attribute, AttributeType, Item, ListLayer, Map, Map2D, Point, TiledLayer,
)
from .formats import (
    ALL_HANDLERS, CosmoMapHandler, DDaveMapHandler, HandlerMetadata,
    MapHandler, find_handler, get_handler, list_formats,
)

__version__ = "1.0.0"
__all__ = [
    "AttributeValueError",
    "FormatError",
    "GameMapError",
    "OutOfBoundsError",
    "UnknownFormatError",
    "UnsupportedOperationError",
    "RecordBuffer",
    "RecordType",
    "Attribute",
    "AttributeType",
    "Item",
    "ListLayer",
    "Map",
    "Map2D",
    "Point",
    "TiledLayer",
    "ALL_HANDLERS",
    "CosmoMapHandler",
    "DDaveMapHandler",
    "HandlerMetadata",
    "MapHandler",
    "find_handler",
    "get_handler",
    "list_formats",
]
