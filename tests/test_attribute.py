import pytest

from gamemap.errors import AttributeValueError
from gamemap.map import Attribute, AttributeType


def test_int_range():
    attr = Attribute('Music', AttributeType.INT, range_min=0, range_max=31, value=5)
    assert attr.value == 5
    attr.value = 31
    assert attr.value == 31
    with pytest.raises(AttributeValueError):
        attr.value = 32
    with pytest.raises(AttributeValueError):
        attr.value = True
    assert attr.value == 31


def test_bool():
    attr = Attribute('Rain', AttributeType.BOOL, value=False)
    attr.value = True
    with pytest.raises(AttributeValueError):
        attr.value = 1


def test_string_length():
    attr = Attribute('Name', AttributeType.STRING, range_min=1, range_max=4)
    attr.value = 'abcd'
    with pytest.raises(AttributeValueError):
        attr.value = ''
    with pytest.raises(AttributeValueError):
        attr.value = 'abcde'

    unlimited = Attribute('Text', AttributeType.STRING)
    unlimited.value = 'x' * 1000


def test_preset_single():
    attr = Attribute('Song', AttributeType.PRESET_SINGLE, presets=['a', 'b'], value=1)
    assert attr.selected_presets() == ['b']
    with pytest.raises(AttributeValueError):
        attr.value = 2


def test_preset_multiple():
    zero = Attribute('Opts', AttributeType.PRESET_MULTIPLE0, presets=['a', 'b', 'c'])
    zero.value = []
    zero.value = [0, 2]
    assert zero.selected_presets() == ['a', 'c']
    with pytest.raises(AttributeValueError):
        zero.value = [1, 1]

    one = Attribute('Opts', AttributeType.PRESET_MULTIPLE1, presets=['a', 'b'])
    with pytest.raises(AttributeValueError):
        one.value = []
    one.value = [1]


def test_preset_type_needs_presets():
    with pytest.raises(AttributeValueError):
        Attribute('Song', AttributeType.PRESET_SINGLE)


def test_none_means_unset():
    attr = Attribute('Music', AttributeType.INT, range_max=3, value=2)
    attr.value = None
    assert attr.value is None
    assert attr.problem(None) is None


def test_invalid_initial_value():
    with pytest.raises(AttributeValueError):
        Attribute('Music', AttributeType.INT, range_max=3, value=4)


def test_descriptor_is_read_only():
    attr = Attribute('Music', AttributeType.INT, range_max=3)
    with pytest.raises(AttributeError):
        attr.title = 'Other'
    with pytest.raises(AttributeError):
        attr.range_max = 100
    assert attr.title == 'Music'
    assert attr.range_max == 3


def test_problem_does_not_change_value():
    attr = Attribute('Music', AttributeType.INT, range_max=3, value=1)
    assert 'between 0 and 3' in attr.problem(9)
    assert attr.value == 1
