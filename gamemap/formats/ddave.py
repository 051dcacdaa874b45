"""
Map handler for Dangerous Dave

=============================================================================
FILE LAYOUT
=============================================================================

Two fixed sizes exist, told apart by file length alone:

    70 bytes    title screen
                70 tile bytes, a 10 x 7 grid, no path

    1280 bytes  normal level
                Offset  Size   Field
                0       256    path: up to 128 (dx, dy) signed byte pairs
                256     1000   tiles: a 100 x 10 grid, one byte per tile
                1256    24     padding (rounds the file up to 1280)

Tile codes are stored as-is.  Code 0 is the empty tile and is kept as 0 in
the model; a tile set to None is written as 0.

=============================================================================
PATH ENCODING
=============================================================================

Enemies follow a single shared path.  Each pair is a step relative to the
previous point, the first one relative to (0, 0):

    bytes:   05 00   05 00   00 FB   EA EA   ...
    deltas:  (5,0)   (5,0)   (0,-5)  END
    points:  (5,0)   (10,0)  (10,-5)

The path ends at the pair (0xEA, 0xEA), or after 128 pairs when the region
is full (there is then no room for the terminator).  A real step of
(-22, -22) has the same bytes as the terminator, so check_limits() refuses
it.  Bytes after the terminator are kept and written back unchanged.

=============================================================================
ENEMY DATA
=============================================================================

Enemy positions live outside the level file (inside the game executable),
so they are an optional supplementary buffer with the id 'enemy'.  It holds
five arrays of four unsigned 16-bit values, one entry per enemy slot:

    Offset  Field
    0       enabled      (slot i at offset 0 + 2i)
    8       pixel X
    16      pixel Y      (of the sprite's lower-left corner)
    24      path offset
    32      calmness

Only enabled slots become items, with `code` set to the slot number.  Item
Y is the sprite's top edge, so it is pixel Y - 16.

More details: http://www.shikadi.net/moddingwiki/DDave_Map_Format

=============================================================================
"""

import logging
from typing import Any, List, Optional, Tuple

from ..errors import FormatError
from ..map import (
    Attribute, AttributeType, Item, LayerBehaviour, ListLayer,
    ListLayerLimits, Map2D, MapBehaviour, MapLimits, Permission, Point,
    TiledLayer, TiledLayerLimits,
)
from ..map.layer import image_from_int_code, permit_within_grid
from ..record import RecordBuffer, RecordType
from .handler import MapContent, HandlerMetadata, MapHandler

FORMAT_ID = 'map-ddave'

logger = logging.getLogger(__name__)

u8 = RecordType.int.u8
s8 = RecordType.int.s8
u16le = RecordType.int.u16le

# Size of path data (bytes) and the most points it can hold.
PATH_LEN = 256
MAX_PATH = PATH_LEN // 2

# Code used in both X and Y to terminate a path.
PATH_END = 0xEA

TITLE_SIZE = Point(10, 7)
LEVEL_SIZE = Point(100, 10)

TITLE_FILESIZE = TITLE_SIZE.x * TITLE_SIZE.y
LAYER_LEN_BG = LEVEL_SIZE.x * LEVEL_SIZE.y
PAD_LEN = 24
LEVEL_FILESIZE = PATH_LEN + LAYER_LEN_BG + PAD_LEN

TILE_SIZE = Point(16, 16)

# Map code to write for locations with no tile set.
DEFAULT_BGTILE = 0

ENEMY_SLOTS = 4
ENEMY_FIELDS = ('enabled', 'pixel_x', 'pixel_y', 'path_offset', 'calmness')
ENEMY_FIELD_STRIDE = ENEMY_SLOTS * u16le.size
ENEMY_BLOCK_LEN = len(ENEMY_FIELDS) * ENEMY_FIELD_STRIDE

# Enemy coordinates are of the lower-left corner of the sprite.
ENEMY_HEIGHT = 16


# =============================================================================
# PATH CODEC
# =============================================================================

def decode_path(region: bytes) -> List[Point]:
    """Turn the path region into absolute points."""
    buffer = RecordBuffer(region)
    points = []
    x = y = 0
    for _ in range(MAX_PATH):
        dx, dy = buffer.read(u8), buffer.read(u8)
        if dx == PATH_END and dy == PATH_END:
            break
        x += dx - 0x100 if dx > s8.maximum else dx
        y += dy - 0x100 if dy > s8.maximum else dy
        points.append(Point(x, y))
    return points


def path_deltas(points: List[Point]) -> List[Tuple[int, int]]:
    """Steps between consecutive points, the first one from (0, 0)."""
    deltas = []
    last_x = last_y = 0
    for pt in points:
        deltas.append((pt.x - last_x, pt.y - last_y))
        last_x, last_y = pt.x, pt.y
    return deltas


def is_terminator(dx: int, dy: int) -> bool:
    """True if a step would be stored as the end-of-path marker."""
    return (dx & 0xFF) == PATH_END and (dy & 0xFF) == PATH_END


def encode_path(points: List[Point], base: Optional[bytes] = None) -> bytes:
    """
    Build the 256-byte path region.

    Parameters:
    -----------
    points : list of Point
        Absolute path points, at most MAX_PATH of them
    base : bytes, optional
        Original region; bytes after the terminator are kept from here
    """
    buffer = RecordBuffer(base if base is not None else PATH_LEN)
    for dx, dy in path_deltas(points):
        buffer.write(s8, dx)
        buffer.write(s8, dy)

    # Add the 'end of path' marker if there's enough space.
    if len(points) < MAX_PATH:
        buffer.write(u8, PATH_END)
        buffer.write(u8, PATH_END)
    else:
        logger.warning("The path has the maximum of %d points, so it fills the "
                       "path area and the end-of-path marker has been omitted.",
                       MAX_PATH)
    return buffer.get_bytes()


# =============================================================================
# LAYER BEHAVIOUR
# =============================================================================

def _permits_bg(layer: TiledLayer, x: int, y: int, code: Any) -> Permission:
    inside = permit_within_grid(layer, x, y, code)
    if not inside:
        return inside
    if code is not None and not (isinstance(code, int) and not isinstance(code, bool)
                                 and u8.fits(code)):
        return Permission(False, f"Tile code {code!r} does not fit in one byte.")
    return Permission(True)


BG_BEHAVIOUR = LayerBehaviour(permits=_permits_bg, image_from_code=image_from_int_code)


def _enemy_attributes() -> dict:
    return {
        'pathOffset': Attribute('Path offset', AttributeType.INT,
                                range_min=0, range_max=u16le.maximum),
        'calmness': Attribute('Calmness', AttributeType.INT,
                              range_min=0, range_max=u16le.maximum),
    }


def _read_enemies(data: bytes) -> List[dict]:
    if len(data) < ENEMY_BLOCK_LEN:
        raise FormatError(
            f"Enemy data is too short ({len(data)} bytes), it must be at least "
            f"{ENEMY_BLOCK_LEN} bytes."
        )
    buffer = RecordBuffer(data)
    enemies = []
    for slot in range(ENEMY_SLOTS):
        buffer.seek_abs(slot * u16le.size)
        en = {}
        for name in ENEMY_FIELDS:
            en[name] = buffer.read(u16le)
            # Skip over the other three slots to the next field.
            if name != ENEMY_FIELDS[-1]:
                buffer.seek_rel(ENEMY_FIELD_STRIDE - u16le.size)
        enemies.append(en)
    return enemies


# =============================================================================
# HANDLER
# =============================================================================

class DDaveMapHandler(MapHandler):
    """Dangerous Dave levels (LEVEL01.DAV .. LEVEL10.DAV, plus the title)."""

    @classmethod
    def metadata(cls) -> HandlerMetadata:
        return HandlerMetadata(
            id=FORMAT_ID,
            title='Dangerous Dave Map Format',
            games=('Dangerous Dave',),
        )

    @classmethod
    def parse(cls, content: MapContent) -> Map2D:
        data = content['main']
        if len(data) == TITLE_FILESIZE:
            size, has_path = TITLE_SIZE, False
        elif len(data) == LEVEL_FILESIZE:
            size, has_path = LEVEL_SIZE, True
        else:
            raise FormatError(f"Unrecognised map size: {len(data)}.")

        enemy_data = content.get('enemy')
        enemies = _read_enemies(enemy_data) if enemy_data is not None else []

        buffer = RecordBuffer(data)
        paths = None
        bg_extra = {}
        if has_path:
            region = buffer.read_bytes(PATH_LEN)
            paths = [decode_path(region)]
            bg_extra['path_region'] = region

        codes = buffer.read_array(u8, size.x * size.y).reshape(size.y, size.x)
        tiles = [[int(code) for code in row] for row in codes]
        if has_path:
            bg_extra['padding'] = buffer.read_bytes(PAD_LEN)

        bg = TiledLayer(
            title='Background',
            tiles=tiles,
            layer_size=size,
            tile_size=TILE_SIZE,
            limits=TiledLayerLimits(
                minimum_layer_size=size,
                maximum_layer_size=size,
                minimum_tile_size=TILE_SIZE,
                maximum_tile_size=TILE_SIZE,
            ),
            behaviour=BG_BEHAVIOUR,
            extra=bg_extra,
        )

        items = []
        for slot, en in enumerate(enemies):
            if en['enabled']:
                items.append(Item(
                    x=en['pixel_x'],
                    y=en['pixel_y'] - ENEMY_HEIGHT,
                    code=slot,
                    attribute_values={
                        'pathOffset': en['path_offset'],
                        'calmness': en['calmness'],
                    },
                ))
        monsters = ListLayer(
            title='Enemies',
            items=items,
            coordinates='pixel',
            limits=ListLayerLimits(
                minimum=Point(0, -ENEMY_HEIGHT),
                maximum=Point(u16le.maximum, u16le.maximum - ENEMY_HEIGHT),
            ),
        )
        if enemy_data is not None:
            monsters.extra['enemy'] = bytes(enemy_data)

        map2d = Map2D(
            item_attributes=_enemy_attributes(),
            paths=paths,
            viewport=Point(20 * TILE_SIZE.x, 10 * TILE_SIZE.y),
            tile_size=TILE_SIZE,
            limits=MapLimits(minimum_map_size=size, maximum_map_size=size),
            behaviour=MapBehaviour(resizable=False),
            layers=[bg, monsters],
        )
        logger.debug("Parsed Dangerous Dave map: %s tiles, %s path points, "
                     "%d enemies", size, len(paths[0]) if paths else 'no',
                     len(items))
        return map2d

    @classmethod
    def check_limits(cls, map: Map2D) -> List[str]:
        issues = super().check_limits(map)

        layers = getattr(map, 'layers', [])
        if (len(layers) != 2 or not isinstance(layers[0], TiledLayer)
                or not isinstance(layers[1], ListLayer)):
            issues.append("Dangerous Dave maps must have exactly two layers: a "
                          "tiled background layer followed by an enemy layer.")
            return issues

        bg, monsters = layers
        size = bg.effective_size(map.map_size) or bg.grid_size()
        if size not in (TITLE_SIZE, LEVEL_SIZE):
            issues.append(f"The map is {size} tiles, but it must be either "
                          f"{LEVEL_SIZE} (a level) or {TITLE_SIZE} (the title "
                          f"screen).")

        for y, row in enumerate(bg.tiles):
            for x, code in enumerate(row):
                if code is not None and not (isinstance(code, int)
                                             and not isinstance(code, bool)
                                             and u8.fits(code)):
                    issues.append(f"Tile code {code!r} at ({x}, {y}) must be "
                                  f"between 0 and {u8.maximum}.")

        issues.extend(cls._path_problems(map, size))
        issues.extend(cls._enemy_problems(monsters))
        return issues

    @staticmethod
    def _path_problems(map: Map2D, size: Point) -> List[str]:
        if not map.paths:
            return []
        if size == TITLE_SIZE and any(map.paths):
            return ["The title screen cannot have an enemy path."]
        issues = []
        if len(map.paths) > 1:
            issues.append(f"There are {len(map.paths)} paths, but only one is "
                          f"supported.")
        path = map.paths[0]
        if len(path) > MAX_PATH:
            issues.append(f"The path has {len(path)} points, but the maximum "
                          f"is {MAX_PATH}.")

        for index, ((dx, dy), pt) in enumerate(zip(path_deltas(path), path)):
            if is_terminator(dx, dy):
                issues.append(f"Point #{index + 1} in the path at ({pt.x}, {pt.y}) "
                              f"ends up at a special value reserved for "
                              f"indicating the end of the path.  Please move "
                              f"this point by at least one pixel in any "
                              f"direction to avoid this conflict.")
            elif not (s8.fits(dx) and s8.fits(dy)):
                issues.append(f"Point #{index + 1} in the path at ({pt.x}, {pt.y}) "
                              f"is too far from the previous point; each step "
                              f"must be between {s8.minimum} and {s8.maximum} "
                              f"pixels.")
        return issues

    @staticmethod
    def _enemy_problems(monsters: ListLayer) -> List[str]:
        issues = []
        if len(monsters.items) > ENEMY_SLOTS:
            issues.append(f"There are {len(monsters.items)} enemies, but the "
                          f"maximum is {ENEMY_SLOTS}.")
        seen = set()
        for index, item in enumerate(monsters.items):
            if not isinstance(item.code, int) or not 0 <= item.code < ENEMY_SLOTS:
                issues.append(f"Enemy #{index + 1} has code {item.code!r}, but "
                              f"it must be an enemy slot from 0 to "
                              f"{ENEMY_SLOTS - 1}.")
            elif item.code in seen:
                issues.append(f"Enemy #{index + 1} uses slot {item.code}, which "
                              f"is already used by another enemy.")
            seen.add(item.code)
        return issues

    @classmethod
    def generate(cls, map: Map2D) -> MapContent:
        bg, monsters = map.layers[0], map.layers[1]
        size = bg.effective_size(map.map_size) or bg.grid_size()
        is_level = size == LEVEL_SIZE

        buffer = RecordBuffer(LEVEL_FILESIZE if is_level else TITLE_FILESIZE)
        if is_level:
            points = map.paths[0] if map.paths else []
            buffer.write_bytes(encode_path(points, bg.extra.get('path_region')))

        buffer.write_array(u8, [
            code if code is not None else DEFAULT_BGTILE
            for row in bg.tiles
            for code in row
        ])
        if is_level:
            buffer.write_bytes(bg.extra.get('padding', bytes(PAD_LEN)))

        output = {'main': buffer.get_bytes()}
        if 'enemy' in monsters.extra or monsters.items:
            output['enemy'] = cls._generate_enemies(monsters)

        logger.debug("Generated Dangerous Dave map: %s tiles, %d enemies",
                     size, len(monsters.items))
        return output

    @staticmethod
    def _generate_enemies(monsters: ListLayer) -> bytes:
        base = monsters.extra.get('enemy')
        original = _read_enemies(base) if base is not None else None
        buffer = RecordBuffer(base if base is not None else ENEMY_BLOCK_LEN)

        def put(slot: int, name: str, value: int):
            buffer.seek_abs(ENEMY_FIELDS.index(name) * ENEMY_FIELD_STRIDE
                            + slot * u16le.size)
            buffer.write(u16le, value)

        for slot in range(ENEMY_SLOTS):
            put(slot, 'enabled', 0)

        for item in monsters.items:
            slot = item.code
            old = original[slot] if original else {}
            values = item.attribute_values
            # Keep the game's own "enabled" value where there was one.
            put(slot, 'enabled', old.get('enabled') or 1)
            put(slot, 'pixel_x', item.x)
            put(slot, 'pixel_y', item.y + ENEMY_HEIGHT)
            path_offset = values.get('pathOffset')
            calmness = values.get('calmness')
            put(slot, 'path_offset', path_offset if path_offset is not None
                else old.get('path_offset', 0))
            put(slot, 'calmness', calmness if calmness is not None
                else old.get('calmness', 0))

        return buffer.get_bytes()
