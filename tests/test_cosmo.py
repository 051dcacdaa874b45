import struct

import numpy as np
import pytest

from gamemap.errors import FormatError
from gamemap.formats.cosmo import (
    BG_LEN, MAX_CODE, CosmoMapHandler, decode_flags, decode_tiles, encode_flags,
    encode_tiles,
)
from gamemap.map import Item, Point

FLAGS = {'bgmusic': 5, 'animation': 3, 'bgScrollX': True, 'bgScrollY': False,
         'rain': True, 'backdrop': 17}


def parse(data):
    return CosmoMapHandler.parse({'main': data})


def test_flag_packing():
    assert encode_flags(FLAGS) == 0x2B71
    assert decode_flags(encode_flags(FLAGS)) == FLAGS


def test_every_flag_bit_is_used():
    values = decode_flags(0xFFFF)
    assert encode_flags(values) == 0xFFFF
    assert decode_flags(0) == {k: (False if isinstance(v, bool) else 0)
                               for k, v in FLAGS.items()}


def test_flags_become_attributes(cosmo_file):
    m = parse(cosmo_file())
    assert {k: a.value for k, a in m.attributes.items()} == FLAGS


def test_size_derived_from_width(cosmo_file):
    m = parse(cosmo_file(width=256))
    assert m.map_size == Point(256, 127)
    assert m.layers[0].grid_size() == Point(256, 127)
    assert len(m.layers[0].extra['tail']) == BG_LEN - 256 * 127


def test_tile_codes(sample_cosmo):
    bg = parse(sample_cosmo).layers[0]
    assert bg.get_tile(0, 0) == 1
    assert bg.get_tile(1, 0) == 1999
    assert bg.get_tile(0, 1) == 2000
    assert bg.get_tile(1, 1) == 2001
    assert bg.get_tile(255, 126) == MAX_CODE
    assert bg.get_tile(2, 0) is None


def test_tile_transform_functions():
    raw = np.array([0, 8, 16, 15992, 16000, 16040, 65520])
    codes = decode_tiles(raw)
    assert codes.tolist() == [0, 1, 2, 1999, 2000, 2001, 3238]
    assert encode_tiles(codes).tolist() == raw.tolist()


def test_non_canonical_tiles_reencode_stably(cosmo_file):
    width = 256
    raw = [0] * (width * 127)
    raw[0] = 12                     # between solid tiles 1 and 2
    raw[1] = 16041                  # just past masked tile 2001
    first = parse(cosmo_file(width=width, raw_tiles=raw))
    assert first.layers[0].get_tile(0, 0) == 1
    assert first.layers[0].get_tile(1, 0) == 2001

    regenerated = CosmoMapHandler.generate(first)['main']
    second = parse(regenerated)
    assert second.layers[0].tiles == first.layers[0].tiles
    assert CosmoMapHandler.generate(second)['main'] == regenerated


def test_actors(sample_cosmo):
    actors = parse(sample_cosmo).layers[1]
    assert actors.coordinates == 'tile'
    assert [(a.code, a.x, a.y) for a in actors.items] == [
        (0, 2, 3), (1, 10, 20), (6, 5, 5), (100, 255, 126)]


def test_round_trip_is_identical(sample_cosmo):
    m = parse(sample_cosmo)
    assert CosmoMapHandler.check_limits(m) == []
    assert CosmoMapHandler.generate(m) == {'main': sample_cosmo}


def test_actor_words_count_words(cosmo_file):
    data = cosmo_file(actors=[(1, 1, 1), (2, 2, 2)])
    assert struct.unpack_from('<H', data, 4)[0] == 6
    assert len(data) == 6 + 12 + BG_LEN * 2


def test_edit_then_round_trip(sample_cosmo):
    m = parse(sample_cosmo)
    m.attributes['bgmusic'].value = 9
    m.layers[0].set_tile(5, 5, 2500)
    m.layers[1].items.append(Item(x=7, y=8, code=33))
    out = CosmoMapHandler.generate(m)['main']

    again = parse(out)
    assert again.attributes['bgmusic'].value == 9
    assert again.layers[0].get_tile(5, 5) == 2500
    assert (again.layers[1].items[-1].x, again.layers[1].items[-1].y) == (7, 8)
    assert len(out) == len(sample_cosmo) + 6


@pytest.mark.parametrize('data', [
    b'',
    b'\x00\x00\x00\x01',
    struct.pack('<3H', 0, 256, 0) + bytes(100),
])
def test_wrong_size(data):
    with pytest.raises(FormatError):
        parse(data)


def test_actor_block_not_whole_records(cosmo_file):
    data = bytearray(cosmo_file(actors=[(1, 1, 1)]))
    struct.pack_into('<H', data, 4, 2)
    with pytest.raises(FormatError):
        parse(bytes(data[:-2]))


def test_zero_width(cosmo_file):
    data = bytearray(cosmo_file())
    struct.pack_into('<H', data, 2, 0)
    with pytest.raises(FormatError):
        parse(bytes(data))


def test_check_limits_is_idempotent(sample_cosmo):
    m = parse(sample_cosmo)
    m.layers[1].items.extend(Item(x=1, y=1, code=1) for _ in range(11))
    first = CosmoMapHandler.check_limits(m)
    second = CosmoMapHandler.check_limits(m)
    assert first == second
    assert len(first) == 1
    assert 'platform' in first[0]


def test_actor_category_limits(sample_cosmo):
    m = parse(sample_cosmo)
    actors = m.layers[1].items
    actors.append(Item(x=1, y=1, code=0))
    actors.extend(Item(x=1, y=1, code=3) for _ in range(11))
    actors.extend(Item(x=1, y=1, code=7) for _ in range(200))
    issues = CosmoMapHandler.check_limits(m)
    assert any('player start' in i for i in issues)
    assert any('fountain' in i for i in issues)
    assert any('light' in i for i in issues)


def test_actor_outside_map(sample_cosmo):
    m = parse(sample_cosmo)
    m.layers[1].items.append(Item(x=256, y=0, code=50))
    issues = CosmoMapHandler.check_limits(m)
    assert len(issues) == 1
    assert 'outside the map' in issues[0]


def test_actor_beyond_layer_limits_reported_once(sample_cosmo):
    m = parse(sample_cosmo)
    m.layers[1].items.append(Item(x=5000, y=0, code=50))
    issues = CosmoMapHandler.check_limits(m)
    assert len(issues) == 1
    assert 'Item #5' in issues[0]


def test_bad_tile_code(sample_cosmo):
    m = parse(sample_cosmo)
    m.layers[0].tiles[3][4] = MAX_CODE + 1
    issues = CosmoMapHandler.check_limits(m)
    assert len(issues) == 1
    assert '(4, 3)' in issues[0]


def test_unset_flag_attribute(sample_cosmo):
    m = parse(sample_cosmo)
    m.attributes['rain'].value = None
    issues = CosmoMapHandler.check_limits(m)
    assert issues == ["The 'rain' attribute must have a value."]


def test_is_permitted_at(sample_cosmo):
    bg = parse(sample_cosmo).layers[0]
    assert bg.is_permitted_at(0, 0, 5)
    assert bg.is_permitted_at(255, 126, None)
    assert not bg.is_permitted_at(256, 0, 5)
    assert not bg.is_permitted_at(0, 0, MAX_CODE + 1)
    assert not bg.is_permitted_at(0, 0, True)


def test_query_resize_keeps_tile_budget(sample_cosmo):
    m = parse(sample_cosmo)
    assert m.query_resize(Point(512, 127)) == Point(512, 63)
    assert m.query_resize(Point(256, 63)) == Point(520, 63)
    assert m.query_resize(Point(1, 1)) == Point(38, 862)


def test_resize(sample_cosmo):
    m = parse(sample_cosmo)
    m.resize(Point(512, 63))
    assert m.layers[0].grid_size() == Point(512, 63)
    assert m.layers[0].get_tile(1, 1) == 2001
    # The last actor is at y = 126, below the new bottom edge.
    del m.layers[1].items[3]
    assert CosmoMapHandler.check_limits(m) == []

    again = parse(CosmoMapHandler.generate(m)['main'])
    assert again.map_size == Point(512, 63)
    assert again.layers[0].get_tile(1, 1) == 2001

    with pytest.raises(ValueError):
        m.resize(Point(300, 300))


def test_generate_needs_actor_layer(sample_cosmo):
    m = parse(sample_cosmo)
    del m.layers[1]
    assert CosmoMapHandler.check_limits(m)
    with pytest.raises(FormatError):
        CosmoMapHandler.generate(m)


def test_metadata():
    md = CosmoMapHandler.metadata()
    assert md.id == 'map-cosmo'
    assert CosmoMapHandler.supps('a1.mni', b'') is None
