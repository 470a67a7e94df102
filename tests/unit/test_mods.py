from __future__ import annotations

import pytest

from tutoring_admin.errors import InvalidModSlot
from tutoring_admin.tables.mods import is_a_day_mod, parse_mod, parse_mod_list, stringify_mod


def test_stringify_mod():
    assert stringify_mod(5) == "5A"
    assert stringify_mod(10) == "10A"
    assert stringify_mod(11) == "1B"
    assert stringify_mod(20) == "10B"


@pytest.mark.parametrize("mod", [0, 21, -1, True, "3"])
def test_stringify_mod_rejects_out_of_range(mod):
    with pytest.raises(InvalidModSlot):
        stringify_mod(mod)


def test_invalid_mod_slot_is_value_error():
    with pytest.raises(ValueError):
        stringify_mod(21)


def test_parse_mod_is_inverse():
    for mod in range(1, 21):
        assert parse_mod(stringify_mod(mod)) == mod
    assert parse_mod(" 3b ") == 13


@pytest.mark.parametrize("text", ["", "11A", "0B", "3C", "A3"])
def test_parse_mod_rejects(text):
    with pytest.raises(InvalidModSlot):
        parse_mod(text)


def test_parse_mod_list():
    assert parse_mod_list("1, 3", "A") == [1, 3]
    assert parse_mod_list("1,10", "B") == [11, 20]
    assert parse_mod_list("", "A") == []
    assert parse_mod_list(" , ", "A") == []


def test_is_a_day_mod():
    assert is_a_day_mod(10) is True
    assert is_a_day_mod(11) is False
