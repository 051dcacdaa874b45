"""
Map handler for Cosmo's Cosmic Adventures

=============================================================================
FILE LAYOUT
=============================================================================

All integers are unsigned 16-bit little-endian.

    Offset  Size              Field
    ------  ----------------  ---------------------------------------------
    0       2                 flags        (bit-packed, see below)
    2       2                 map_width    in tiles
    4       2                 actor_words  size of the actor block in
                                           16-bit WORDS (3 per actor)
    6       2 * actor_words   actors       {type, x, y} per actor
    ...     65528             tiles        exactly 32764 tile codes

    total size = 6 + 2 * actor_words + 65528

=============================================================================
FLAGS
=============================================================================

    15 14 13 12 11 | 10  9  8 |  7  |  6  |  5  |  4  3  2  1  0
    ---- music --- | -- anim -| vsc | hsc | rain| --- backdrop ---

    music:    background music number (0-31)
    anim:     palette animation type (0-7)
    vsc/hsc:  backdrop scrolls vertically / horizontally
    rain:     rain falls in the level
    backdrop: backdrop image number (0-31)

All sixteen bits are used.

=============================================================================
FIXED TILE BUDGET
=============================================================================

The tile block always holds 32764 codes no matter how big the level is.
Only the width is stored; the height is whatever fits:

    height = 32764 // width         e.g. width 256 -> height 127

The 32764 - width * height codes left over after the last full row are kept
untouched in the background layer's extra['tail'] and written back as-is.
Widening a map therefore shortens it, and vice versa.

=============================================================================
TILE CODES
=============================================================================

On disk a tile code is a byte offset into the game's tile graphics:

    0                  no tile
    1 .. 15999         solid tile, 8 bytes per tile      -> code = raw // 8
    16000 .. 65535     masked tile, 40 bytes per tile    -> code = 2000 +
                                                          (raw - 16000) // 40

So logical codes 1..1999 are solid tiles and 2000 and up are masked tiles.
Writing reverses this.  Raw values that are not exact multiples collapse onto
the same logical tile; the game never produces them, and re-encoding is
stable (parse -> generate -> parse gives the same codes).

More details: http://www.shikadi.net/moddingwiki/Cosmo_Level_Format

=============================================================================
"""

import logging
from collections import Counter
from typing import Any, Dict, List

import numpy as np

from ..errors import FormatError
from ..map import (
    Attribute, AttributeType, Item, LayerBehaviour, ListLayer,
    ListLayerLimits, Map2D, MapBehaviour, MapLimits, Permission, Point,
    TiledLayer, TiledLayerLimits,
)
from ..map.layer import image_from_int_code, permit_within_grid
from ..record import RecordBuffer, RecordType, record_size
from .handler import MapContent, HandlerMetadata, MapHandler

FORMAT_ID = 'map-cosmo'

logger = logging.getLogger(__name__)

u16le = RecordType.int.u16le

HEADER = {
    'flags': u16le,
    'map_width': u16le,
    'actor_words': u16le,
}

ACTOR = {
    'type': u16le,
    'x': u16le,
    'y': u16le,
}

HEADER_LEN = record_size(HEADER)
ACTOR_LEN = record_size(ACTOR)
ACTOR_LEN_WORDS = ACTOR_LEN // 2

# Number of tiles in the background layer.
BG_LEN = 32764

# Minimums are one screen/viewport in size.
BG_MIN = Point(38, 18)
BG_MAX = Point(BG_LEN // BG_MIN.y, BG_LEN // BG_MIN.x)

TILE_SIZE = Point(8, 8)

# Tile code conversion.
SOLID_BYTES = 8
MASKED_BYTES = 40
MASKED_RAW_BASE = 16000
MASKED_CODE_BASE = MASKED_RAW_BASE // SOLID_BYTES     # 2000
MAX_CODE = MASKED_CODE_BASE + (u16le.maximum - MASKED_RAW_BASE) // MASKED_BYTES

# Actor types handled specially by the game, and how many of each it can hold.
ACTOR_PLAYER_START = 0
ACTOR_PLATFORM = 1
ACTOR_FOUNTAINS = range(2, 6)
ACTOR_LIGHTS = range(6, 9)

MAX_PLATFORMS = 10
MAX_FOUNTAINS = 10
MAX_LIGHTS = 200
MAX_ACTORS = 410

FLAG_ATTRIBUTES = ('bgmusic', 'animation', 'bgScrollY', 'bgScrollX', 'rain',
                   'backdrop')


# =============================================================================
# FLAGS
# =============================================================================

def decode_flags(flags: int) -> Dict[str, Any]:
    """Split the header flags field into its six values."""
    return {
        'bgmusic': (flags >> 11) & 0x1F,
        'animation': (flags >> 8) & 0x07,
        'bgScrollY': bool(flags & 0x80),
        'bgScrollX': bool(flags & 0x40),
        'rain': bool(flags & 0x20),
        'backdrop': flags & 0x1F,
    }


def encode_flags(values: Dict[str, Any]) -> int:
    """Inverse of decode_flags()."""
    return (
        ((values['bgmusic'] & 0x1F) << 11)
        | ((values['animation'] & 0x07) << 8)
        | (0x80 if values['bgScrollY'] else 0)
        | (0x40 if values['bgScrollX'] else 0)
        | (0x20 if values['rain'] else 0)
        | (values['backdrop'] & 0x1F)
    )


# =============================================================================
# TILE CODES
# =============================================================================

def decode_tiles(raw: np.ndarray) -> np.ndarray:
    """Convert on-disk tile values to logical tile codes (0 = no tile)."""
    raw = np.asarray(raw, dtype=np.int64)
    return np.where(
        raw < MASKED_RAW_BASE,
        raw // SOLID_BYTES,
        MASKED_CODE_BASE + (raw - MASKED_RAW_BASE) // MASKED_BYTES,
    )


def encode_tiles(codes: np.ndarray) -> np.ndarray:
    """Convert logical tile codes back to on-disk values."""
    codes = np.asarray(codes, dtype=np.int64)
    return np.where(
        codes < MASKED_CODE_BASE,
        codes * SOLID_BYTES,
        MASKED_RAW_BASE + (codes - MASKED_CODE_BASE) * MASKED_BYTES,
    )


def derive_height(width: int) -> int:
    return BG_LEN // width


# =============================================================================
# LAYER / MAP BEHAVIOUR
# =============================================================================

def _permits_bg(layer: TiledLayer, x: int, y: int, code: Any) -> Permission:
    inside = permit_within_grid(layer, x, y, code)
    if not inside:
        return inside
    offset = y * layer.grid_size().x + x
    if offset >= BG_LEN:
        return Permission(
            False,
            f"Tile offset ({offset}) is larger than the maximum ({BG_LEN - 1}) "
            f"supported by the game.",
        )
    if code is not None and not (isinstance(code, int) and not isinstance(code, bool)
                                 and 0 <= code <= MAX_CODE):
        return Permission(False, f"Tile code {code!r} is not a valid Cosmo tile.")
    return Permission(True)


def _adjust_size(map2d: Map2D, proposed: Point) -> Point:
    # The number of tiles is fixed, so one dimension follows the other.
    current = map2d.map_size
    if current is not None and proposed.x == current.x and proposed.y != current.y:
        width = BG_LEN // proposed.y
    else:
        width = proposed.x
    return Point(width, derive_height(width))


BG_BEHAVIOUR = LayerBehaviour(permits=_permits_bg, image_from_code=image_from_int_code)
MAP_BEHAVIOUR = MapBehaviour(adjust_size=_adjust_size, resizable=True)


def _flag_attributes(flags: Dict[str, Any]) -> Dict[str, Attribute]:
    return {
        # The game info layer turns these numbers into filenames.
        'bgmusic': Attribute('Background music', AttributeType.INT,
                             range_min=0, range_max=0x1F, value=flags['bgmusic']),
        'animation': Attribute('Palette animation type', AttributeType.INT,
                               range_min=0, range_max=7, value=flags['animation']),
        'backdrop': Attribute('Backdrop image', AttributeType.INT,
                              range_min=0, range_max=0x1F, value=flags['backdrop']),
        'bgScrollX': Attribute('Scroll background horizontally', AttributeType.BOOL,
                               value=flags['bgScrollX']),
        'bgScrollY': Attribute('Scroll background vertically', AttributeType.BOOL,
                               value=flags['bgScrollY']),
        'rain': Attribute('Rain', AttributeType.BOOL, value=flags['rain']),
    }


# =============================================================================
# HANDLER
# =============================================================================

class CosmoMapHandler(MapHandler):
    """Cosmo's Cosmic Adventures levels (A1.MNI .. C10.MNI)."""

    @classmethod
    def metadata(cls) -> HandlerMetadata:
        return HandlerMetadata(
            id=FORMAT_ID,
            title="Cosmo's Cosmic Adventures Map Format",
            games=("Cosmo's Cosmic Adventures",),
        )

    @classmethod
    def parse(cls, content: MapContent) -> Map2D:
        data = content['main']

        # ---------------------------------------------------------------------
        # VALIDATE SIZE (before building anything)
        # ---------------------------------------------------------------------
        if len(data) < HEADER_LEN:
            raise FormatError(
                f"File is too short to be a Cosmo map ({len(data)} bytes)."
            )
        buffer = RecordBuffer(data)
        header = buffer.read_record(HEADER)

        if header['actor_words'] % ACTOR_LEN_WORDS:
            raise FormatError(
                f"Actor block length ({header['actor_words']} words) is not a "
                f"multiple of {ACTOR_LEN_WORDS}."
            )
        expected = HEADER_LEN + header['actor_words'] * 2 + BG_LEN * 2
        if len(data) != expected:
            raise FormatError(
                f"Unrecognised map size: {len(data)} bytes, expected {expected} "
                f"from the header."
            )
        width = header['map_width']
        if width == 0 or width > BG_LEN:
            raise FormatError(f"Invalid map width: {width}.")
        height = derive_height(width)

        # ---------------------------------------------------------------------
        # ACTORS
        # ---------------------------------------------------------------------
        actors = []
        for _ in range(header['actor_words'] // ACTOR_LEN_WORDS):
            actor = buffer.read_record(ACTOR)
            actors.append(Item(x=actor['x'], y=actor['y'], code=actor['type']))

        # ---------------------------------------------------------------------
        # BACKGROUND TILES
        # ---------------------------------------------------------------------
        raw = buffer.read_array(u16le, BG_LEN)
        used = width * height
        codes = decode_tiles(raw[:used]).reshape(height, width)
        tiles = [[int(code) if code else None for code in row] for row in codes]

        bg = TiledLayer(
            title='Background',
            tiles=tiles,
            limits=TiledLayerLimits(
                minimum_tile_size=TILE_SIZE,
                maximum_tile_size=TILE_SIZE,
            ),
            behaviour=BG_BEHAVIOUR,
            extra={'tail': [int(v) for v in raw[used:]]},
        )
        actor_layer = ListLayer(
            title='Actors',
            items=actors,
            coordinates='tile',
            limits=ListLayerLimits(maximum=Point(BG_MAX.x - 1, BG_MAX.y - 1)),
        )

        map2d = Map2D(
            attributes=_flag_attributes(decode_flags(header['flags'])),
            viewport=Point(BG_MIN.x * TILE_SIZE.x, BG_MIN.y * TILE_SIZE.y),
            map_size=Point(width, height),
            tile_size=TILE_SIZE,
            limits=MapLimits(minimum_map_size=BG_MIN, maximum_map_size=BG_MAX),
            behaviour=MAP_BEHAVIOUR,
            layers=[bg, actor_layer],
        )
        logger.debug("Parsed Cosmo map: %s tiles, %d actors, %d spare tile codes",
                     map2d.map_size, len(actors), BG_LEN - used)
        return map2d

    @classmethod
    def check_limits(cls, map: Map2D) -> List[str]:
        issues = super().check_limits(map)

        for attr_id in FLAG_ATTRIBUTES:
            if attr_id not in map.attributes:
                issues.append(f"The map is missing the '{attr_id}' attribute.")
            elif map.attributes[attr_id].value is None:
                issues.append(f"The '{attr_id}' attribute must have a value.")

        layers = getattr(map, 'layers', [])
        if (len(layers) != 2 or not isinstance(layers[0], TiledLayer)
                or not isinstance(layers[1], ListLayer)):
            issues.append("Cosmo maps must have exactly two layers: a tiled "
                          "background layer followed by an actor layer.")
            return issues

        size = map.map_size
        if size is None:
            issues.append("Cosmo maps must have a map size set.")
            return issues

        issues.extend(cls._size_problems(size))
        issues.extend(cls._tile_problems(layers[0]))
        issues.extend(cls._actor_problems(layers[1], size))
        return issues

    @staticmethod
    def _size_problems(size: Point) -> List[str]:
        issues = []
        if not BG_MIN.x <= size.x <= BG_MAX.x:
            issues.append(f"The map is {size.x} tiles wide, but the width must "
                          f"be between {BG_MIN.x} and {BG_MAX.x}.")
        if not BG_MIN.y <= size.y <= BG_MAX.y:
            issues.append(f"The map is {size.y} tiles high, but the height must "
                          f"be between {BG_MIN.y} and {BG_MAX.y}.")
        if size.x > 0 and size.y != derive_height(size.x):
            issues.append(f"A map {size.x} tiles wide must be exactly "
                          f"{derive_height(size.x)} tiles high to fill the "
                          f"{BG_LEN} tile budget, not {size.y}.")
        return issues

    @staticmethod
    def _tile_problems(bg: TiledLayer) -> List[str]:
        bad = [
            (x, y, code)
            for y, row in enumerate(bg.tiles)
            for x, code in enumerate(row)
            if code is not None and not (isinstance(code, int)
                                         and not isinstance(code, bool)
                                         and 0 <= code <= MAX_CODE)
        ]
        if not bad:
            return []
        x, y, code = bad[0]
        return [f"{len(bad)} background tile(s) have codes Cosmo cannot store, "
                f"the first is {code!r} at ({x}, {y}).  Codes must be between 0 "
                f"and {MAX_CODE}."]

    @staticmethod
    def _actor_problems(layer: ListLayer, size: Point) -> List[str]:
        issues = []
        counts = Counter()
        for index, actor in enumerate(layer.items):
            if not isinstance(actor.code, int) or not u16le.fits(actor.code):
                issues.append(f"Actor #{index + 1} has an invalid type "
                              f"{actor.code!r}.")
            # Items outside the layer limits are reported by the generic checks.
            if layer.within_limits(actor):
                if not (actor.x < size.x and actor.y < size.y):
                    issues.append(f"Actor #{index + 1} ({actor.code}) at "
                                  f"({actor.x}, {actor.y}) is outside the map.")

            if actor.code == ACTOR_PLAYER_START:
                counts['player start'] += 1
            elif actor.code == ACTOR_PLATFORM:
                counts['platform'] += 1
            elif actor.code in ACTOR_FOUNTAINS:
                counts['fountain'] += 1
            elif actor.code in ACTOR_LIGHTS:
                counts['light'] += 1
            else:
                counts['actor'] += 1

        caps = (
            ('player start', 1),
            ('platform', MAX_PLATFORMS),
            ('fountain', MAX_FOUNTAINS),
            ('light', MAX_LIGHTS),
            ('actor', MAX_ACTORS),
        )
        for category, cap in caps:
            if counts[category] > cap:
                issues.append(f"There are {counts[category]} {category} actors "
                              f"but the game supports a maximum of {cap}.")

        if len(layer.items) * ACTOR_LEN_WORDS > u16le.maximum:
            issues.append(f"There are too many actors ({len(layer.items)}) to "
                          f"fit in the file header.")
        return issues

    @classmethod
    def generate(cls, map: Map2D) -> MapContent:
        if len(map.layers) < 2 or not isinstance(map.layers[1], ListLayer):
            raise FormatError("Cosmo maps must have an actor layer.")
        bg, actor_layer = map.layers[0], map.layers[1]
        width, height = map.map_size
        actors = actor_layer.items

        header = {
            'flags': encode_flags({k: map.attributes[k].value for k in FLAG_ATTRIBUTES}),
            'map_width': width,
            'actor_words': len(actors) * ACTOR_LEN_WORDS,
        }

        buffer = RecordBuffer(HEADER_LEN + len(actors) * ACTOR_LEN + BG_LEN * 2)
        buffer.write_record(HEADER, header)

        for actor in actors:
            buffer.write_record(ACTOR, {'type': actor.code, 'x': actor.x, 'y': actor.y})

        codes = encode_tiles([
            code if code is not None else 0
            for row in bg.tiles[:height]
            for code in row[:width]
        ])
        spare = BG_LEN - codes.size
        tail = list(bg.extra.get('tail', []))[:spare]
        tail.extend([0] * (spare - len(tail)))
        buffer.write_array(u16le, codes)
        buffer.write_array(u16le, tail)

        logger.debug("Generated Cosmo map: %s tiles, %d actors", map.map_size, len(actors))
        return {'main': buffer.get_bytes()}
