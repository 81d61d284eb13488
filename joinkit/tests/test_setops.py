import pytest

from joinkit import MISSING, SchemaMismatchError, Table, distinct, intersect, setdiff, union
from joinkit.util import row_identity


def _df1():
    return Table({"x": [1, 2], "y": [1, 1]})


def _df2():
    return Table({"x": [1, 2], "y": [1, 2]})


def _ids(t):
    return {row_identity(r) for r in t.rows()}


def test_intersect():
    assert list(intersect(_df1(), _df2()).rows()) == [(1, 1)]


def test_union_deduplicates_across_inputs():
    out = union(_df1(), _df2())
    assert list(out.rows()) == [(1, 1), (2, 1), (2, 2)]


def test_setdiff_both_directions():
    assert list(setdiff(_df1(), _df2()).rows()) == [(2, 1)]
    assert list(setdiff(_df2(), _df1()).rows()) == [(2, 2)]


def test_union_with_itself_collapses_repeated_rows():
    x = Table({"a": [1, 1, 2], "b": ["p", "p", "q"]})
    assert list(union(x, x).rows()) == [(1, "p"), (2, "q")]
    assert union(x, x) == distinct(x)


def test_intersect_and_setdiff_deduplicate_x():
    x = Table({"a": [3, 1, 3, 1]})
    y = Table({"a": [1]})
    assert list(intersect(x, y).rows()) == [(1,)]
    assert list(setdiff(x, y).rows()) == [(3,)]


def test_missing_equals_missing_for_whole_rows():
    x = Table({"a": [None, 1]})
    y = Table({"a": [None]})
    assert list(intersect(x, y).rows()) == [(MISSING,)]
    assert list(setdiff(x, y).rows()) == [(1,)]
    assert len(union(x, y)) == 2


def test_numbers_compare_by_value_but_bools_stay_distinct():
    x = Table({"a": [1, True]})
    y = Table({"a": [1.0]})
    assert list(intersect(x, y).rows()) == [(1,)]
    assert len(union(x, y)) == 2


def test_complement_law():
    x = Table({"k": [1, 2, 3, 3], "v": ["a", "b", "c", "c"]})
    y = Table({"k": [3, 4, 1], "v": ["c", "d", "z"]})
    parts = [setdiff(x, y), intersect(x, y), setdiff(y, x)]
    ids = [_ids(p) for p in parts]
    assert not ids[0] & ids[1]
    assert not ids[0] & ids[2]
    assert not ids[1] & ids[2]
    assert ids[0] | ids[1] | ids[2] == _ids(union(x, y))
    assert sum(len(p) for p in parts) == len(union(x, y))


@pytest.mark.parametrize("op", [intersect, union, setdiff])
def test_schema_mismatch(op):
    with pytest.raises(SchemaMismatchError) as ex:
        op(Table({"x": [1]}), Table({"z": [1]}))
    assert ex.value.code == "E_SCHEMA_MISMATCH"


def test_schema_mismatch_on_column_order():
    with pytest.raises(SchemaMismatchError) as ex:
        union(Table({"x": [1], "y": [2]}), Table({"y": [2], "x": [1]}))
    assert "different order" in str(ex.value)
