"""
Format handler registry

Every supported format is listed once in ALL_HANDLERS.  Look handlers up by
their metadata id:

    handler = get_handler('map-cosmo')
    map = handler.parse({'main': data})
"""

from typing import Iterator, Optional, Type

from ..errors import UnknownFormatError
from .handler import HandlerMetadata, MapContent, MapHandler
from .cosmo import CosmoMapHandler
from .ddave import DDaveMapHandler

ALL_HANDLERS = (
    CosmoMapHandler,
    DDaveMapHandler,
)


def find_handler(format_id: str) -> Optional[Type[MapHandler]]:
    """Handler for `format_id`, or None if no handler has that id."""
    for handler in ALL_HANDLERS:
        if handler.metadata().id == format_id:
            return handler
    return None


def get_handler(format_id: str) -> Type[MapHandler]:
    """Like find_handler(), but raises UnknownFormatError instead of None."""
    handler = find_handler(format_id)
    if handler is None:
        raise UnknownFormatError(format_id)
    return handler


def list_formats() -> Iterator[HandlerMetadata]:
    for handler in ALL_HANDLERS:
        yield handler.metadata()


__all__ = [
    "ALL_HANDLERS",
    "find_handler",
    "get_handler",
    "list_formats",
    "HandlerMetadata",
    "MapContent",
    "MapHandler",
    "CosmoMapHandler",
    "DDaveMapHandler",
]
