import logging

import pytest

from joinkit import Table, JoinKitUserError, NoCommonColumnsError, UnknownColumnError
from joinkit.keys import ByNames, ByPairs, Natural, as_key_spec, key_spec_from_params, key_spec_to_params, resolve_keys

FLIGHTS = Table({"year": [2013], "month": [1], "carrier": ["UA"], "dest": ["IAH"]})
WEATHER = Table({"origin": ["EWR"], "year": [2013], "month": [1], "temp": [39.0]})
AIRPORTS = Table({"faa": ["IAH"], "name": ["George Bush Intercontinental"]})


def test_natural_keys_follow_left_order(caplog):
    """natural resolution uses every shared name in the left table's order and logs it."""
    with caplog.at_level(logging.INFO, logger="joinkit.keys"):
        mapping = resolve_keys(FLIGHTS, WEATHER, Natural())
    assert mapping == (("year", "year"), ("month", "month"))
    assert "year, month" in caplog.text


def test_natural_keys_none_in_common():
    with pytest.raises(NoCommonColumnsError) as ex:
        resolve_keys(FLIGHTS, AIRPORTS)
    assert ex.value.code == "E_NO_COMMON_COLUMNS"
    assert ex.value.left_columns == FLIGHTS.header


def test_name_list_pairs_each_name_with_itself():
    assert resolve_keys(FLIGHTS, WEATHER, ByNames(("year",))) == (("year", "year"),)


def test_name_list_unknown_on_right_reports_side():
    with pytest.raises(UnknownColumnError) as ex:
        resolve_keys(FLIGHTS, WEATHER, ByNames(("carrier",)))
    assert ex.value.column == "carrier"
    assert ex.value.side == "right"
    assert "temp" in str(ex.value)


def test_explicit_pairs_verbatim():
    assert resolve_keys(FLIGHTS, AIRPORTS, ByPairs((("dest", "faa"),))) == (("dest", "faa"),)


def test_explicit_pairs_unknown_on_left():
    with pytest.raises(UnknownColumnError) as ex:
        resolve_keys(FLIGHTS, AIRPORTS, ByPairs((("origin", "faa"),)))
    assert ex.value.side == "left"


@pytest.mark.parametrize(
    "by, expected",
    [
        (None, Natural()),
        ("carrier", ByNames(("carrier",))),
        (["year", "month"], ByNames(("year", "month"))),
        ({"dest": "faa"}, ByPairs((("dest", "faa"),))),
        ([("dest", "faa")], ByPairs((("dest", "faa"),))),
    ],
)
def test_as_key_spec_forms(by, expected):
    assert as_key_spec(by) == expected


def test_as_key_spec_rejects_garbage():
    with pytest.raises(JoinKitUserError) as ex:
        as_key_spec(42)
    assert ex.value.code == "E_JOIN_PARAMS"


def test_key_specs_reject_empty_and_duplicate_names():
    with pytest.raises(JoinKitUserError):
        ByNames(())
    with pytest.raises(JoinKitUserError):
        ByNames(("year", "year"))
    with pytest.raises(JoinKitUserError):
        ByPairs((("a",),))


def test_key_spec_from_params():
    assert key_spec_from_params({}) == Natural()
    assert key_spec_from_params({"on": "carrier"}) == ByNames(("carrier",))
    assert key_spec_from_params({"left_on": ["dest"], "right_on": ["faa"]}) == ByPairs((("dest", "faa"),))


@pytest.mark.parametrize(
    "params",
    [
        {"on": ["id"], "left_on": ["id"]},
        {"left_on": ["id"]},
        {"left_on": ["id"], "right_on": []},
        {"left_on": ["id"], "right_on": ["id", "b"]},
        {"on": []},
        {"on": 3},
    ],
)
def test_key_spec_from_params_rejects_bad_combinations(params):
    with pytest.raises(JoinKitUserError) as ex:
        key_spec_from_params(params)
    assert ex.value.code == "E_JOIN_PARAMS"


def test_key_spec_to_params_roundtrip():
    for spec in (ByNames(("a",)), ByPairs((("a", "b"),)), Natural()):
        assert key_spec_from_params(key_spec_to_params(spec)) == spec


def test_explicit_pairs_may_reuse_a_right_column():
    spec = as_key_spec({"a": "k", "b": "k"})
    assert spec == ByPairs((("a", "k"), ("b", "k")))
    assert resolve_keys(Table({"a": [1], "b": [1]}), Table({"k": [1]}), spec) == (("a", "k"), ("b", "k"))
    with pytest.raises(JoinKitUserError) as ex:
        ByPairs((("a", "k"), ("a", "j")))
    assert ex.value.code == "E_JOIN_PARAMS"
