"""
Exception types raised by the codec layer

=============================================================================
FATAL VS ADVISORY
=============================================================================

Only FATAL conditions are raised as exceptions:

- FormatError:               the file is not in the format asked for
- OutOfBoundsError:          a read/write ran off the end of a buffer
- UnsupportedOperationError: e.g. resizing a map that cannot be resized
- UnknownFormatError:        no handler registered under that id
- AttributeValueError:       an attribute was given a value it cannot hold

Problems that only prevent a map from being SAVED (too many actors, a path
that is too long, ...) are never raised.  They are returned as a list of
strings by MapHandler.check_limits() so they can all be shown at once.

=============================================================================
"""


class GameMapError(Exception):
    """Base class for every error raised by gamemap."""


class FormatError(GameMapError):
    """Input data does not match the layout expected by the format handler."""


class OutOfBoundsError(GameMapError, IndexError):
    """A record buffer cursor moved outside the buffer."""


class UnsupportedOperationError(GameMapError):
    """The map format does not support the requested operation."""


class UnknownFormatError(GameMapError):
    """No format handler is registered under the requested id."""

    def __init__(self, format_id: str):
        super().__init__(f"Invalid format code: {format_id}")
        self.format_id = format_id


class AttributeValueError(GameMapError, ValueError):
    """A value does not satisfy the constraints of its attribute."""
