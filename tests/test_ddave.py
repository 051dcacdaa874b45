import logging

import pytest

from gamemap.errors import FormatError, UnsupportedOperationError
from gamemap.formats.ddave import (
    LEVEL_SIZE, MAX_PATH, PATH_END, TITLE_SIZE, DDaveMapHandler, decode_path,
    encode_path,
)
from gamemap.map import Item, Point


def parse(main, enemy=None):
    content = {'main': main}
    if enemy is not None:
        content['enemy'] = enemy
    return DDaveMapHandler.parse(content)


# -----------------------------------------------------------------------------
# Title screen
# -----------------------------------------------------------------------------

def test_blank_title_screen():
    m = parse(bytes(70))
    bg, enemies = m.layers
    assert bg.grid_size() == TITLE_SIZE == Point(10, 7)
    assert all(code == 0 for row in bg.tiles for code in row)
    assert m.paths is None
    assert enemies.items == []
    assert DDaveMapHandler.check_limits(m) == []
    assert DDaveMapHandler.generate(m) == {'main': bytes(70)}


def test_title_screen_tiles():
    data = bytes(range(70))
    m = parse(data)
    assert m.layers[0].get_tile(9, 6) == 69
    assert m.layers[0].get_tile(0, 1) == 10
    assert DDaveMapHandler.generate(m)['main'] == data


def test_title_screen_cannot_have_path():
    m = parse(bytes(70))
    m.paths = [[Point(1, 1)]]
    assert DDaveMapHandler.check_limits(m) == [
        "The title screen cannot have an enemy path."]


@pytest.mark.parametrize('size', [0, 69, 71, 1279, 1281])
def test_unrecognised_size(size):
    with pytest.raises(FormatError):
        parse(bytes(size))


# -----------------------------------------------------------------------------
# Levels and paths
# -----------------------------------------------------------------------------

def test_level_round_trip(ddave_level):
    data = ddave_level(
        deltas=[(5, 0), (5, 0), (0, -5)],
        trailing=b'\x11\x22\x33',
        tiles=bytes(i % 256 for i in range(1000)),
        padding=b'\x01' * 24,
    )
    m = parse(data)
    assert m.layers[0].grid_size() == LEVEL_SIZE
    assert m.layers[0].get_tile(99, 9) == 999 % 256
    assert m.paths == [[Point(5, 0), Point(10, 0), Point(10, -5)]]
    assert DDaveMapHandler.check_limits(m) == []
    assert DDaveMapHandler.generate(m) == {'main': data}


def test_full_path_has_no_terminator(ddave_level):
    data = ddave_level(deltas=[(1, 1)] * MAX_PATH, terminate=False)
    m = parse(data)
    assert len(m.paths[0]) == MAX_PATH
    assert m.paths[0][-1] == Point(MAX_PATH, MAX_PATH)
    assert DDaveMapHandler.check_limits(m) == []
    assert DDaveMapHandler.generate(m)['main'] == data


def test_full_path_logs_missing_terminator(caplog):
    points = [Point(i, 0) for i in range(1, MAX_PATH + 1)]
    with caplog.at_level(logging.WARNING, logger='gamemap.formats.ddave'):
        region = encode_path(points)
    assert region[-2:] == b'\x01\x00'
    [record] = caplog.records
    assert record.levelno == logging.WARNING
    assert 'end-of-path marker has been omitted' in record.getMessage()


def test_terminator_follows_last_delta(ddave_level):
    m = parse(ddave_level())
    assert m.paths == [[]]
    m.paths[0] = [Point(3, 4), Point(6, 8), Point(5, 6)]
    assert DDaveMapHandler.check_limits(m) == []
    main = DDaveMapHandler.generate(m)['main']
    assert main[:8] == bytes([3, 4, 3, 4, 0xFF, 0xFE, PATH_END, PATH_END])
    assert parse(main).paths == m.paths


def test_empty_path_is_just_terminator(ddave_level):
    m = parse(ddave_level(deltas=[(1, 2)]))
    m.paths[0] = []
    main = DDaveMapHandler.generate(m)['main']
    assert main[:2] == bytes([PATH_END, PATH_END])
    assert parse(main).paths == [[]]


def test_decode_stops_at_terminator():
    region = bytes([1, 1, PATH_END, PATH_END, 9, 9]) + bytes(250)
    assert decode_path(region) == [Point(1, 1)]


@pytest.mark.parametrize('points', [
    [Point(-22, -22)],
    [Point(10, 10), Point(-12, -12)],
    [Point(0xEA, 0xEA)],
])
def test_sentinel_collision(ddave_level, points):
    m = parse(ddave_level())
    m.paths[0] = points
    issues = DDaveMapHandler.check_limits(m)
    assert len(issues) == 1
    assert 'end of the path' in issues[0]


def test_path_step_too_large(ddave_level):
    m = parse(ddave_level())
    m.paths[0] = [Point(100, 0), Point(300, 0)]
    issues = DDaveMapHandler.check_limits(m)
    assert len(issues) == 1
    assert 'Point #2' in issues[0]


def test_path_too_long(ddave_level):
    m = parse(ddave_level())
    m.paths[0] = [Point(i, 0) for i in range(1, MAX_PATH + 2)]
    issues = DDaveMapHandler.check_limits(m)
    assert any('maximum is 128' in i for i in issues)


def test_only_one_path(ddave_level):
    m = parse(ddave_level())
    m.paths.append([Point(1, 1)])
    assert len(DDaveMapHandler.check_limits(m)) == 1


# -----------------------------------------------------------------------------
# Tiles
# -----------------------------------------------------------------------------

def test_tile_limits(ddave_level):
    m = parse(ddave_level())
    bg = m.layers[0]
    assert bg.is_permitted_at(99, 9, 255)
    assert not bg.is_permitted_at(0, 0, 256)
    assert not bg.is_permitted_at(0, 0, True)
    assert not bg.is_permitted_at(100, 0, 1)

    bg.set_tile(4, 2, 256)
    issues = DDaveMapHandler.check_limits(m)
    assert len(issues) == 1
    assert '(4, 2)' in issues[0]


def test_no_tile_written_as_zero(ddave_level):
    m = parse(ddave_level(tiles=b'\x07' * 1000))
    m.layers[0].set_tile(0, 0, None)
    main = DDaveMapHandler.generate(m)['main']
    assert main[256] == 0
    assert main[257] == 7


def test_resize_unsupported():
    m = parse(bytes(70))
    with pytest.raises(UnsupportedOperationError):
        m.resize(Point(10, 7))


# -----------------------------------------------------------------------------
# Enemies
# -----------------------------------------------------------------------------

def test_enemies(ddave_level, enemy_buffer):
    enemy = enemy_buffer({
        0: (1, 100, 116, 4, 2),
        1: (0, 555, 555, 5, 5),
        2: (1, 200, 50, 0, 7),
    }, extra=b'XYZ')
    m = parse(ddave_level(), enemy)
    items = m.layers[1].items
    assert [(i.code, i.x, i.y) for i in items] == [(0, 100, 100), (2, 200, 34)]
    assert items[0].attribute_values == {'pathOffset': 4, 'calmness': 2}
    assert items[1].attribute_values == {'pathOffset': 0, 'calmness': 7}
    assert DDaveMapHandler.check_limits(m) == []

    out = DDaveMapHandler.generate(m)
    assert out['enemy'] == enemy


def test_edit_enemies(ddave_level, enemy_buffer):
    m = parse(ddave_level(), enemy_buffer({0: (1, 10, 30, 0, 0)}))
    items = m.layers[1].items
    items[0].x = 40
    items.append(Item(x=60, y=0, code=3, attribute_values={'calmness': 9}))
    again = parse(DDaveMapHandler.generate(m)['main'],
                  DDaveMapHandler.generate(m)['enemy'])
    assert [(i.code, i.x, i.y) for i in again.layers[1].items] == [(0, 40, 14), (3, 60, 0)]
    assert again.layers[1].items[1].attribute_values == {'pathOffset': 0, 'calmness': 9}


def test_removed_enemy_is_disabled(ddave_level, enemy_buffer):
    enemy = enemy_buffer({1: (1, 10, 30, 0, 0)})
    m = parse(ddave_level(), enemy)
    m.layers[1].items.clear()
    out = DDaveMapHandler.generate(m)['enemy']
    assert parse(ddave_level(), out).layers[1].items == []
    assert out[10:] == enemy[10:]


def test_no_enemy_buffer_no_enemy_output(ddave_level):
    m = parse(ddave_level())
    assert 'enemy' not in DDaveMapHandler.generate(m)


def test_short_enemy_buffer(ddave_level):
    with pytest.raises(FormatError):
        parse(ddave_level(), bytes(39))


def test_enemy_limits(ddave_level):
    m = parse(ddave_level())
    items = m.layers[1].items
    items.extend(Item(x=0, y=0, code=slot) for slot in range(4))
    assert DDaveMapHandler.check_limits(m) == []

    items.append(Item(x=0, y=0, code=1))
    issues = DDaveMapHandler.check_limits(m)
    assert any('maximum is 4' in i for i in issues)
    assert any('already used' in i for i in issues)


def test_enemy_slot_range(ddave_level):
    m = parse(ddave_level())
    m.layers[1].items.append(Item(x=0, y=0, code=4))
    issues = DDaveMapHandler.check_limits(m)
    assert len(issues) == 1
    assert 'slot' in issues[0]


def test_enemy_attribute_values(ddave_level):
    m = parse(ddave_level())
    m.layers[1].items.append(Item(x=0, y=0, code=0,
                                  attribute_values={'calmness': -1, 'speed': 3}))
    issues = DDaveMapHandler.check_limits(m)
    assert len(issues) == 2
    assert any("'speed'" in i for i in issues)


def test_metadata():
    md = DDaveMapHandler.metadata()
    assert md.id == 'map-ddave'
    assert md.games == ('Dangerous Dave',)
    assert DDaveMapHandler.supps('level01.dav', bytes(1280)) is None


def test_item_text_checked(ddave_level, enemy_buffer):
    m = parse(ddave_level(), enemy_buffer({0: (1, 10, 30, 0, 0)}))
    enemy = m.layers[1].items[0]
    enemy.text = 'abc'
    enemy.text_max_length = 2
    issues = DDaveMapHandler.check_limits(m)
    assert len(issues) == 1
    assert 'Item #1' in issues[0]
    assert 'no more than 2' in issues[0]
