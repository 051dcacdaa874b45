"""
Fixed-layout binary record reader/writer

=============================================================================
WHY A RECORD CODEC?
=============================================================================

Every map format handler reads and writes the same kind of data: headers
and record arrays made of little-endian integers.  Rather than sprinkling
struct.unpack() calls with hand-computed offsets through every handler,
a layout is written down once as an ordered schema:

    HEADER = {
        'flags':      RecordType.int.u16le,
        'map_width':  RecordType.int.u16le,
        'actor_words': RecordType.int.u16le,
    }

and read or written in one call:

    header = buffer.read_record(HEADER)     # -> {'flags': .., ...}
    buffer.write_record(HEADER, header)

=============================================================================
CURSOR AND BOUNDS
=============================================================================

A RecordBuffer keeps an explicit cursor.  Every read/write starts at the
cursor and advances it by the field size.  The cursor can be moved with
seek_abs() and seek_rel().

Nothing is ever clamped, truncated or padded implicitly:

- Reading past the end of the data raises OutOfBoundsError
- Writing past the end raises OutOfBoundsError (buffers must be pre-sized)
- Writing a value that does not fit in the field raises OutOfBoundsError

=============================================================================
BULK DATA
=============================================================================

Tile grids are large (Cosmo maps carry 32764 tile codes).  read_array() and
write_array() move a whole run of integers through NumPy in one step instead
of looping over read()/write().

=============================================================================
"""

import struct
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Union

import numpy as np

from .errors import OutOfBoundsError


# =============================================================================
# FIELD TYPES
# =============================================================================

@dataclass(frozen=True)
class IntType:
    """
    Little-endian integer field.

    size:   width in bytes (1, 2 or 4)
    signed: two's complement if True
    """
    size: int
    signed: bool

    @property
    def fmt(self) -> str:
        """struct format string for this field."""
        code = {1: 'b', 2: 'h', 4: 'i'}[self.size]
        return '<' + (code if self.signed else code.upper())

    @property
    def dtype(self) -> np.dtype:
        """Equivalent NumPy dtype (explicitly little-endian)."""
        return np.dtype(('<i' if self.signed else '<u') + str(self.size))

    @property
    def minimum(self) -> int:
        return -(1 << (self.size * 8 - 1)) if self.signed else 0

    @property
    def maximum(self) -> int:
        bits = self.size * 8 - (1 if self.signed else 0)
        return (1 << bits) - 1

    def fits(self, value: int) -> bool:
        return self.minimum <= value <= self.maximum

    def __str__(self) -> str:
        name = ('s' if self.signed else 'u') + str(self.size * 8)
        return name if self.size == 1 else name + 'le'


class _IntTypes:
    u8 = IntType(1, False)
    u16le = IntType(2, False)
    u32le = IntType(4, False)
    s8 = IntType(1, True)
    s16le = IntType(2, True)
    s32le = IntType(4, True)


class RecordType:
    """Namespace for field types: RecordType.int.u16le and friends."""
    int = _IntTypes


# An ordered mapping of field name -> field type.  Plain dicts keep
# insertion order, which is the on-disk order.
Schema = Mapping[str, IntType]


def record_size(schema: Schema) -> int:
    """Number of bytes one record of this schema occupies."""
    return sum(field_type.size for field_type in schema.values())


# =============================================================================
# RECORD BUFFER
# =============================================================================

class RecordBuffer:
    """
    Byte buffer with a cursor, for reading and writing fixed-layout records.

    Parameters:
    -----------
    source : int or bytes-like
        An int creates a zero-filled buffer of that many bytes, ready to be
        written to.  Bytes-like data is copied, so writes never alter the
        caller's buffer.
    """

    def __init__(self, source: Union[int, bytes, bytearray, memoryview]):
        self._data = bytearray(source)
        self._pos = 0

    def __len__(self) -> int:
        return len(self._data)

    # -------------------------------------------------------------------------
    # Cursor
    # -------------------------------------------------------------------------

    def tell(self) -> int:
        return self._pos

    def seek_abs(self, offset: int):
        """Move the cursor to an absolute offset."""
        if not 0 <= offset <= len(self._data):
            raise OutOfBoundsError(
                f"Cannot seek to offset {offset}, buffer is only "
                f"{len(self._data)} bytes long."
            )
        self._pos = offset

    def seek_rel(self, delta: int):
        """Move the cursor relative to where it is now."""
        self.seek_abs(self._pos + delta)

    def _check(self, count: int, action: str):
        if self._pos + count > len(self._data):
            raise OutOfBoundsError(
                f"Attempted to {action} {count} bytes at offset {self._pos}, "
                f"but the buffer is only {len(self._data)} bytes long."
            )

    def _claim(self, count: int, action: str) -> int:
        """Check `count` bytes are available at the cursor, then advance."""
        self._check(count, action)
        start = self._pos
        self._pos = start + count
        return start

    # -------------------------------------------------------------------------
    # Single fields
    # -------------------------------------------------------------------------

    def read(self, field_type: IntType) -> int:
        start = self._claim(field_type.size, 'read')
        return struct.unpack_from(field_type.fmt, self._data, start)[0]

    def write(self, field_type: IntType, value: int):
        if not field_type.fits(value):
            raise OutOfBoundsError(
                f"Value {value} does not fit in a {field_type} field."
            )
        start = self._claim(field_type.size, 'write')
        struct.pack_into(field_type.fmt, self._data, start, value)

    def read_bytes(self, count: int) -> bytes:
        start = self._claim(count, 'read')
        return bytes(self._data[start:start + count])

    def write_bytes(self, data: bytes):
        start = self._claim(len(data), 'write')
        self._data[start:start + len(data)] = data

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def read_record(self, schema: Schema) -> Dict[str, int]:
        """
        Read one record, field by field in schema order.

        Returns:
        --------
        dict : field name -> integer value
        """
        return {name: self.read(field_type) for name, field_type in schema.items()}

    def write_record(self, schema: Schema, values: Mapping[str, int]):
        """
        Write one record in schema order.

        Every field in the schema must be present in `values`; extra keys
        are ignored.  The whole record is bounds-checked before any byte is
        written so a failed write leaves the buffer untouched.
        """
        self._check(record_size(schema), 'write')
        for name, field_type in schema.items():
            if not field_type.fits(values[name]):
                raise OutOfBoundsError(
                    f"Value {values[name]} for field '{name}' does not fit in "
                    f"a {field_type} field."
                )
        for name, field_type in schema.items():
            self.write(field_type, values[name])

    # -------------------------------------------------------------------------
    # Arrays
    # -------------------------------------------------------------------------

    def read_array(self, field_type: IntType, count: int) -> np.ndarray:
        """Read `count` consecutive fields as a NumPy array."""
        start = self._claim(field_type.size * count, 'read')
        return np.frombuffer(
            bytes(self._data[start:start + field_type.size * count]),
            dtype=field_type.dtype,
            count=count,
        ).astype(np.int64)

    def write_array(self, field_type: IntType, values: Iterable[int]):
        """Write a run of integers, all of the same field type."""
        arr = np.asarray(list(values), dtype=np.int64)
        if arr.size and (arr.min() < field_type.minimum or arr.max() > field_type.maximum):
            bad = arr[(arr < field_type.minimum) | (arr > field_type.maximum)][0]
            raise OutOfBoundsError(
                f"Value {int(bad)} does not fit in a {field_type} field."
            )
        raw = arr.astype(field_type.dtype).tobytes()
        start = self._claim(len(raw), 'write')
        self._data[start:start + len(raw)] = raw

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def get_bytes(self) -> bytes:
        """Return the whole buffer contents."""
        return bytes(self._data)
