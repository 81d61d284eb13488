import math

import petl as etl
import pytest

from joinkit import MISSING, Table, JoinKitUserError
from joinkit.tests import DATA_DIR


def test_table_from_mapping_keeps_column_order():
    t = Table({"b": [1, 2], "a": ["x", "y"]})
    assert t.header == ("b", "a")
    assert t.nrows == 2
    assert list(t.rows()) == [(1, "x"), (2, "y")]


def test_table_iterates_like_petl():
    """Header first, then data rows; petl can consume it directly."""
    t = Table({"a": [1, 2]})
    assert list(t) == [("a",), (1,), (2,)]
    assert list(etl.data(t)) == [(1,), (2,)]


def test_table_normalizes_none_and_nan_to_missing():
    t = Table({"a": [None, math.nan, 3]})
    assert t.column("a")[0] is MISSING
    assert t.column("a")[1] is MISSING
    assert t.column("a")[2] == 3


def test_table_rejects_duplicate_columns():
    with pytest.raises(JoinKitUserError) as ex:
        Table([("a", [1]), ("a", [2])])
    assert getattr(ex.value, "code", None) == "E_TABLE_DUPLICATE_COLUMN"


def test_table_rejects_ragged_columns():
    with pytest.raises(JoinKitUserError) as ex:
        Table({"a": [1, 2], "b": [1]})
    assert getattr(ex.value, "code", None) == "E_TABLE_RAGGED"


def test_from_rows_checks_row_width():
    with pytest.raises(JoinKitUserError) as ex:
        Table.from_rows(["a", "b"], [(1, 2), (3,)])
    assert getattr(ex.value, "code", None) == "E_TABLE_ROW_WIDTH"


def test_from_records_fills_missing_keys():
    t = Table.from_records([{"a": 1}, {"a": 2, "b": "z"}])
    assert t.header == ("a", "b")
    assert t.row(0) == (1, MISSING)


def test_from_petl_maps_na_values():
    t = Table.from_petl(etl.fromcsv(str(DATA_DIR / "flights.csv")), na_values=("",))
    assert t.nrows == 6
    assert t.column("tailnum")[-1] is MISSING


def test_unknown_column_lookup():
    t = Table({"a": [1]})
    with pytest.raises(JoinKitUserError) as ex:
        t.column("b")
    assert getattr(ex.value, "code", None) == "E_TABLE_UNKNOWN_COLUMN"


def test_select_drop_take_return_new_tables():
    t = Table({"a": [1, 2, 3], "b": [4, 5, 6]})
    assert t.select(["b"]).header == ("b",)
    assert t.drop(["b"]).header == ("a",)
    assert list(t.take([2, 0]).rows()) == [(3, 6), (1, 4)]
    assert t.head(1).nrows == 1
    # original untouched
    assert t.nrows == 3 and t.header == ("a", "b")


def test_equality_treats_missing_as_equal_and_is_ordered():
    a = Table({"k": [1, None]})
    b = Table({"k": [1, None]})
    c = Table({"k": [None, 1]})
    assert a == b
    assert a != c
    assert a.same_rows(c)


def test_to_petl_shows_missing_as_none():
    t = Table({"a": [MISSING, 1]})
    assert list(etl.data(t.to_petl())) == [(None,), (1,)]


def test_str_renders_preview():
    s = str(Table({"carrier": ["AA"], "name": [MISSING]}))
    assert "carrier" in s
    assert "NA" in s


def test_same_rows_compares_by_value_and_multiplicity():
    assert Table({"a": [1]}).same_rows(Table({"a": [1.0]}))
    assert Table({"a": [1, 2, 2]}).same_rows(Table({"a": [2, 1, 2]}))
    assert not Table({"a": [1, 2, 2]}).same_rows(Table({"a": [2, 1, 1]}))
    assert not Table({"a": [True]}).same_rows(Table({"a": [1]}))


def test_zero_column_tables_keep_their_row_count():
    t = Table.from_rows([], [(), ()])
    assert len(t) == 2
    assert list(t.rows()) == [(), ()]
    assert t == Table({"a": [1, 2]}).select([])
    assert t != Table.from_rows([], [()])
