"""
Items placed in list layers, and how an editor should draw them

=============================================================================
ITEMS
=============================================================================

An Item is one placed object: an actor, an enemy, a decoration.  It has a
position, an opaque `code` chosen by the format handler (for Cosmo it is the
actor type number, for Dangerous Dave the enemy slot), and some optional
extras:

- path:             waypoints the item follows, or None if unsupported
- attribute_values: values for the Map's item_attributes schema
- id_group / id_source / id_target:
                    integers linking items together without a hierarchy
                    (switch -> platform, door -> destination)
- options:          whether the item can be a link source and/or target
- text:             optional string carried by the item (a sign, a hint),
                    with length bounds text_min_length..text_max_length
                    (0 = no limit)
- display:          drawing instructions for an external renderer

=============================================================================
DISPLAY
=============================================================================

Display instructions come in two flavours:

    StaticDisplay([DrawOp(image=6), DrawOp(image=15)])
        Always draw image 6 then image 15 on top.

    ComputedDisplay(lambda values: [DrawOp(text=str(values['id']))])
        Recomputed from the item's current attribute values, so an editor
        can overlay e.g. a door number that follows user edits.

The codec itself never looks at `display`.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Union

from .geometry import Point


class Icon(IntEnum):
    """Icons an editor can overlay on an item."""
    ERROR = 0
    WARNING = 1
    UP_ARROW = 2
    DOWN_ARROW = 3
    LEFT_ARROW = 4
    RIGHT_ARROW = 5
    UP_DOWN_ARROW = 6
    LEFT_RIGHT_ARROW = 7
    UP_DOWN_LEFT_RIGHT_ARROW = 8
    UP_LEFT_DIAG_ARROW = 9
    DOWN_LEFT_DIAG_ARROW = 10
    UP_RIGHT_DIAG_ARROW = 11
    DOWN_RIGHT_DIAG_ARROW = 12


@dataclass
class DrawOp:
    """
    One drawing instruction.  Exactly one of image/text/icon is normally set.

    In `text`, "$0" switches to the default colour, "$1" to the secondary
    colour and so on; "$$" is a literal dollar sign.
    """
    image: Optional[int] = None          # Index into the layer's image list
    text: Optional[str] = None           # Text to draw
    font: int = 0                        # 1 = use the game's own font
    icon: Optional[Icon] = None          # Overlay icon
    x: int = 0                           # Horizontal offset in pixels
    y: int = 0                           # Vertical offset in pixels


@dataclass
class StaticDisplay:
    ops: List[DrawOp] = field(default_factory=list)

    def resolve(self, attribute_values: Dict[str, Any]) -> List[DrawOp]:
        return list(self.ops)


@dataclass
class ComputedDisplay:
    compute: Callable[[Dict[str, Any]], List[DrawOp]]

    def resolve(self, attribute_values: Dict[str, Any]) -> List[DrawOp]:
        return list(self.compute(attribute_values))


Display = Union[StaticDisplay, ComputedDisplay]


@dataclass
class ItemOptions:
    """What links an editor may create for an item."""
    id_source: bool = False                          # Can be a link source
    id_target: bool = False                          # Can be a link target


@dataclass
class Item:
    """
    Object placed in a ListLayer.

    Coordinates are in the unit given by the owning layer's `coordinates`
    field ("pixel" or "tile").
    """
    x: int                                           # X position
    y: int                                           # Y position
    code: Any                                        # Opaque object code
    width: Optional[int] = None                      # Size, if known
    height: Optional[int] = None
    path: Optional[List[Point]] = None               # None = no path support
    attribute_values: Dict[str, Any] = field(default_factory=dict)
    display: Optional[Display] = None
    id_group: Optional[int] = None                   # None = cannot be grouped
    id_source: Optional[int] = None                  # Link source id
    id_target: Optional[int] = None                  # Link target id
    options: ItemOptions = field(default_factory=ItemOptions)
    text: Optional[str] = None                       # None = no text
    text_min_length: int = 0
    text_max_length: int = 0                         # 0 = unlimited

    def text_problem(self) -> Optional[str]:
        """Why `text` is outside its length bounds, or None if it is fine."""
        if self.text is None:
            return None
        if len(self.text) < self.text_min_length:
            return f"text must be at least {self.text_min_length} characters long."
        if self.text_max_length and len(self.text) > self.text_max_length:
            return f"text must be no more than {self.text_max_length} characters long."
        return None

    def draw_ops(self) -> List[DrawOp]:
        """Current drawing instructions (empty if no display is set)."""
        if self.display is None:
            return []
        return self.display.resolve(self.attribute_values)
