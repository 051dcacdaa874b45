"""Synthetic map files shared by the format and CLI tests."""

import struct

import pytest

COSMO_BG_LEN = 32764

# music=5, animation=3, bgScrollX, rain, backdrop=17
COSMO_FLAGS = 0x2B71


def build_cosmo(width=256, flags=COSMO_FLAGS, actors=(), raw_tiles=None, tail=None):
    """
    Assemble a Cosmo level.

    raw_tiles holds on-disk tile values for the width x height grid (all
    zero if omitted); tail fills the rest of the 32764-entry tile block.
    """
    height = COSMO_BG_LEN // width
    used = width * height
    raw = list(raw_tiles) if raw_tiles is not None else [0] * used
    assert len(raw) == used
    spare = list(tail) if tail is not None else [0] * (COSMO_BG_LEN - used)
    assert len(spare) == COSMO_BG_LEN - used

    data = struct.pack('<3H', flags, width, len(actors) * 3)
    for actor_type, x, y in actors:
        data += struct.pack('<3H', actor_type, x, y)
    data += struct.pack(f'<{COSMO_BG_LEN}H', *(raw + spare))
    return data


def build_ddave_level(deltas=(), terminate=True, trailing=b'', tiles=None,
                      padding=bytes(24)):
    """Assemble a 1280-byte Dangerous Dave level."""
    region = bytearray()
    for dx, dy in deltas:
        region += struct.pack('<bb', dx, dy)
    if terminate:
        region += b'\xEA\xEA'
    region += trailing
    assert len(region) <= 256
    region += bytes(256 - len(region))

    if tiles is None:
        tiles = bytes(1000)
    assert len(tiles) == 1000 and len(padding) == 24
    return bytes(region) + bytes(tiles) + bytes(padding)


def build_enemies(slots, extra=b''):
    """
    Assemble an enemy buffer.

    slots maps slot number -> (enabled, pixel_x, pixel_y, path_offset, calmness).
    """
    fields = [[0] * 4 for _ in range(5)]
    for slot, values in slots.items():
        for k, value in enumerate(values):
            fields[k][slot] = value
    return struct.pack('<20H', *(v for field in fields for v in field)) + extra


@pytest.fixture
def cosmo_file():
    return build_cosmo


@pytest.fixture
def ddave_level():
    return build_ddave_level


@pytest.fixture
def enemy_buffer():
    return build_enemies


@pytest.fixture
def sample_cosmo():
    """A 256 x 127 level with a few tiles and actors of every category."""
    width = 256
    raw = [0] * (width * (COSMO_BG_LEN // width))
    raw[0] = 8                      # solid tile 1
    raw[1] = 15992                  # last solid tile, 1999
    raw[width] = 16000              # first masked tile, 2000
    raw[width + 1] = 16040          # masked tile 2001
    raw[-1] = 65520                 # masked tile 3238
    tail = [(i * 7) & 0xFFFF for i in range(COSMO_BG_LEN - len(raw))]
    actors = [(0, 2, 3), (1, 10, 20), (6, 5, 5), (100, 255, 126)]
    return build_cosmo(width=width, actors=actors, raw_tiles=raw, tail=tail)
