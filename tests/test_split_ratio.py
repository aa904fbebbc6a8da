import pytest

from household.services.split_ratio import invert_split_ratio, normalize_split_ratio, parse_split_ratio


def test_parse_returns_both_shares():
    assert parse_split_ratio("3:2") == ("3", "2")
    assert parse_split_ratio(" 1.5 : 1 ") == ("1.5", "1")


def test_normalize_strips_whitespace():
    assert normalize_split_ratio(" 60 : 40 ") == "60:40"


def test_invert_swaps_shares():
    assert invert_split_ratio("3:2") == "2:3"
    assert invert_split_ratio("1.5:1") == "1:1.5"


def test_invert_is_self_inverse():
    assert invert_split_ratio(invert_split_ratio("70:30")) == "70:30"
    assert invert_split_ratio("1:1") == "1:1"


def test_invert_passes_none_through():
    assert invert_split_ratio(None) is None


@pytest.mark.parametrize("value", ["", "3", "3:", ":2", "a:b", "3:2:1", "-1:2", "3/2"])
def test_malformed_ratio_is_rejected(value):
    with pytest.raises(ValueError):
        parse_split_ratio(value)


def test_zero_zero_is_rejected():
    with pytest.raises(ValueError):
        parse_split_ratio("0:0")
