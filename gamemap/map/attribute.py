"""
Typed, range/preset-constrained attributes for maps and items

=============================================================================
WHAT IS AN ATTRIBUTE?
=============================================================================

Most map formats store a handful of level-wide settings next to the tile
data: which song plays, which backdrop is shown, whether it rains.  Format
handlers expose each of these as an Attribute so an editor can present them
generically without knowing anything about the game.

An Attribute is a small descriptor:

    Attribute(title='Background music', type=AttributeType.INT,
              range_min=0, range_max=31, value=5)

Only the handler decides WHAT attributes exist.  Callers may change the
`value` of an attribute, but never its title, type, presets or range.

=============================================================================
VALUE RULES PER TYPE
=============================================================================

    PRESET_SINGLE     int index into `presets`
    PRESET_MULTIPLE0  list of distinct indices into `presets` (may be empty)
    PRESET_MULTIPLE1  list of distinct indices into `presets` (at least one)
    STRING            str, len >= range_min, len <= range_max
                      (range_max == 0 means unlimited)
    INT               int, range_min <= value <= range_max
    BOOL              True or False

A value of None means "not set" and is accepted for every type.  Item
attribute schemas use this: the schema lives on the Map, the values live on
each Item.

=============================================================================
"""

from enum import Enum
from typing import Any, List, Optional, Sequence

from ..errors import AttributeValueError


class AttributeType(Enum):
    """Kind of value an Attribute holds."""
    PRESET_SINGLE = "preset-single"
    PRESET_MULTIPLE0 = "preset-multiple0"
    PRESET_MULTIPLE1 = "preset-multiple1"
    STRING = "string"
    INT = "int"
    BOOL = "bool"


_PRESET_TYPES = (
    AttributeType.PRESET_SINGLE,
    AttributeType.PRESET_MULTIPLE0,
    AttributeType.PRESET_MULTIPLE1,
)


def _is_int(value: Any) -> bool:
    # bool is a subclass of int, but True is not a valid music number.
    return isinstance(value, int) and not isinstance(value, bool)


class Attribute:
    """
    Single attribute descriptor with a validated, writable `value`.

    Parameters:
    -----------
    title : str
        User-friendly name
    type : AttributeType
        What kind of value can be stored
    presets : sequence of str, optional
        Choices for the PRESET_* types
    range_min, range_max : int
        Numeric range (INT) or string length range (STRING)
    value : any
        Initial value, validated like any later assignment
    """

    __slots__ = ('_title', '_type', '_presets', '_range_min', '_range_max',
                 '_value', '_frozen')

    def __init__(self, title: str, type: AttributeType,
                 presets: Optional[Sequence[str]] = None,
                 range_min: int = 0, range_max: int = 0, value: Any = None):
        object.__setattr__(self, '_frozen', False)
        self._title = title
        self._type = AttributeType(type)
        self._presets = tuple(presets) if presets is not None else None
        self._range_min = range_min
        self._range_max = range_max

        if self._type in _PRESET_TYPES and not self._presets:
            raise AttributeValueError(
                f"Attribute '{title}' is a {self._type.value} attribute "
                f"but has no presets."
            )

        self._value = None
        self._frozen = True
        self.value = value

    def __setattr__(self, name, value):
        if name == 'value':
            object.__setattr__(self, name, value)
        elif getattr(self, '_frozen', False):
            raise AttributeError(
                f"Attribute '{self._title}': only 'value' can be changed."
            )
        else:
            object.__setattr__(self, name, value)

    # -------------------------------------------------------------------------
    # Read-only descriptor fields
    # -------------------------------------------------------------------------

    @property
    def title(self) -> str:
        return self._title

    @property
    def type(self) -> AttributeType:
        return self._type

    @property
    def presets(self) -> Optional[tuple]:
        return self._presets

    @property
    def range_min(self) -> int:
        return self._range_min

    @property
    def range_max(self) -> int:
        return self._range_max

    # -------------------------------------------------------------------------
    # Value
    # -------------------------------------------------------------------------

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, new_value: Any):
        reason = self.problem(new_value)
        if reason is not None:
            raise AttributeValueError(reason)
        if isinstance(new_value, list):
            new_value = list(new_value)
        object.__setattr__(self, '_value', new_value)

    def problem(self, value: Any) -> Optional[str]:
        """
        Explain why `value` cannot be stored in this attribute.

        Returns:
        --------
        str or None : reason the value is invalid, None if it is acceptable
        """
        if value is None:
            return None

        t = self._type
        name = f"Attribute '{self._title}'"

        if t is AttributeType.BOOL:
            if not isinstance(value, bool):
                return f"{name} must be true or false, not {value!r}."
            return None

        if t is AttributeType.INT:
            if not _is_int(value):
                return f"{name} must be an integer, not {value!r}."
            if not self._range_min <= value <= self._range_max:
                return (f"{name} must be between {self._range_min} and "
                        f"{self._range_max}, not {value}.")
            return None

        if t is AttributeType.STRING:
            if not isinstance(value, str):
                return f"{name} must be a string, not {value!r}."
            if len(value) < self._range_min:
                return (f"{name} must be at least {self._range_min} "
                        f"characters long.")
            if self._range_max and len(value) > self._range_max:
                return (f"{name} must be no more than {self._range_max} "
                        f"characters long.")
            return None

        if t is AttributeType.PRESET_SINGLE:
            return self._preset_problem(name, value)

        # PRESET_MULTIPLE0 / PRESET_MULTIPLE1
        if not isinstance(value, (list, tuple)):
            return f"{name} must be a list of preset indices, not {value!r}."
        if t is AttributeType.PRESET_MULTIPLE1 and not value:
            return f"{name} must have at least one option selected."
        if len(set(value)) != len(value):
            return f"{name} has the same option selected more than once."
        for index in value:
            reason = self._preset_problem(name, index)
            if reason:
                return reason
        return None

    def _preset_problem(self, name: str, index: Any) -> Optional[str]:
        if not _is_int(index) or not 0 <= index < len(self._presets):
            return (f"{name} must be a preset index from 0 to "
                    f"{len(self._presets) - 1}, not {index!r}.")
        return None

    def selected_presets(self) -> List[str]:
        """Titles of the currently selected presets (PRESET_* types only)."""
        if self._type not in _PRESET_TYPES or self._value is None:
            return []
        indices = [self._value] if self._type is AttributeType.PRESET_SINGLE else self._value
        return [self._presets[i] for i in indices]

    def __repr__(self) -> str:
        return (f"Attribute(title={self._title!r}, type={self._type.value}, "
                f"value={self._value!r})")
