import pytest
from hypothesis import given, strategies as st

from lunarlib.errors import LuaError
from lunarlib.luatable import LuaTable
from lunarlib.tablelib import concat, insert, move, pack, remove, sort, unpack

MAXINTEGER = (1 << 63) - 1


def _table(values):
    t = LuaTable()
    for index, value in enumerate(values, 1):
        t[index] = value
    return t


def test_insert_appends_at_end():
    t = LuaTable()
    insert(t, "a")
    insert(t, "b")
    assert unpack(t) == ("a", "b")
    assert len(t) == 2


def test_insert_at_front_shifts_elements():
    t = _table(["a", "b"])
    insert(t, 1, "z")
    items = unpack(t)
    assert items[0] == "z"
    assert items[1:] == ("a", "b")


def test_insert_position_out_of_bounds():
    t = _table(["a"])
    with pytest.raises(LuaError, match="position out of bounds"):
        insert(t, 5, "x")


def test_insert_wrong_number_of_arguments():
    with pytest.raises(LuaError, match="wrong number of arguments"):
        insert(LuaTable(), 1, 2, 3)


def test_insert_requires_table():
    with pytest.raises(TypeError, match="table expected"):
        insert("abc", "x")


def test_remove_last():
    t = _table(["a", "b", "c"])
    assert remove(t) == "c"
    assert unpack(t) == ("a", "b")


def test_remove_first_shifts_down():
    t = _table(["a", "b", "c"])
    assert remove(t, 1) == "a"
    assert unpack(t) == ("b", "c")
    assert len(t) == 2


def test_remove_from_empty_returns_none():
    t = LuaTable()
    assert remove(t) is None
    assert len(t) == 0


def test_remove_position_out_of_bounds():
    t = _table(["a"])
    with pytest.raises(LuaError, match="position out of bounds"):
        remove(t, 7)


def test_move_overlapping_forward():
    t = _table([1, 2, 3])
    result = move(t, 1, 3, 2)
    assert result is t
    assert unpack(t) == (1, 1, 2, 3)


def test_move_to_other_table():
    src = _table(["x", "y"])
    dest = LuaTable()
    assert move(src, 1, 2, 1, dest) is dest
    assert unpack(dest) == unpack(src)


def test_move_empty_range_does_nothing():
    t = _table(["a"])
    move(t, 3, 2, 1)
    assert unpack(t) == ("a",)


def test_move_too_many_elements():
    with pytest.raises(LuaError, match="too many elements to move"):
        move(LuaTable(), -1, MAXINTEGER, 1)


def test_move_destination_wrap_around():
    with pytest.raises(LuaError, match="destination wrap around"):
        move(_table([1, 2]), 1, 2, MAXINTEGER)


def test_concat_with_separator():
    assert concat(_table(["a", "b", "c"]), ",") == "a,b,c"


def test_concat_numbers():
    assert concat(_table([1, 2.5])) == "12.5"


def test_concat_empty_interval():
    assert concat(_table(["a", "b"]), ",", 3, 2) == ""


def test_concat_subrange_matches_unpack():
    t = _table(["p", "q", "r", "s"])
    assert concat(t, "", 2, 3) == "".join(unpack(t, 2, 3))


def test_concat_invalid_value():
    with pytest.raises(LuaError, match="invalid value \\(table\\) at index 2"):
        concat(_table(["a", LuaTable()]))


def test_pack_sets_count_and_values():
    t = pack("a", None, 3)
    assert t["n"] == 3
    assert unpack(t, 1, t["n"]) == ("a", None, 3)


def test_unpack_empty_range():
    assert unpack(_table([1, 2]), 3, 2) == ()


def test_unpack_too_many_results():
    with pytest.raises(LuaError, match="too many results"):
        unpack(LuaTable(), 1, 1 << 40)


@given(st.lists(st.integers(min_value=-1000, max_value=1000), max_size=300))
def test_sort_matches_sorted(values):
    t = _table(values)
    sort(t)
    assert list(unpack(t)) == sorted(values)


@given(st.lists(st.text(max_size=5), max_size=150))
def test_sort_with_comparator_descending(values):
    t = _table(values)
    sort(t, lambda a, b: a > b)
    assert list(unpack(t)) == sorted(values, reverse=True)


def test_sort_large_already_sorted_input():
    values = list(range(500))
    t = _table(values[::-1])
    sort(t)
    assert list(unpack(t)) == values


def test_sort_invalid_order_function():
    t = _table([3, 1, 4, 1, 5, 9, 2, 6])
    with pytest.raises(LuaError, match="invalid order function"):
        sort(t, lambda a, b: True)


def test_sort_mixed_types_fails():
    t = _table([1, "a", 2])
    with pytest.raises(LuaError, match="attempt to compare"):
        sort(t)


def test_sort_comparator_must_be_callable():
    with pytest.raises(TypeError, match="function expected"):
        sort(_table([2, 1]), 5)