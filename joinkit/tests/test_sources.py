import pytest

from joinkit import MISSING, Source, JoinKitUserError
from joinkit.models.sources import _source_from_descriptor
from joinkit.tests import DATA_DIR


def test_source_infers_csv_type():
    assert Source(DATA_DIR / "flights.csv").type == "csv"


def test_source_infer_type_failure():
    with pytest.raises(JoinKitUserError) as ex:
        Source("flights")
    assert getattr(ex.value, "code", None) == "E_SOURCE_TYPE_INFER"


def test_source_rejects_unsupported_type():
    with pytest.raises(JoinKitUserError) as ex:
        Source("flights.csv", type="parquet")
    assert getattr(ex.value, "code", None) == "E_SOURCE_TYPE_UNSUPPORTED"


def test_source_table_reads_all_rows_and_na_values():
    t = Source(DATA_DIR / "flights.csv").table()
    assert t.header[:4] == ("year", "month", "day", "carrier")
    assert t.nrows == 6
    assert t.column("tailnum")[5] is MISSING


def test_source_custom_na_values(tmp_path):
    p = tmp_path / "in.csv"
    p.write_text("a,b\nNA,-\n", encoding="utf-8")
    t = Source(str(p), na_values=("-",)).table()
    assert t.row(0) == ("NA", MISSING)


def test_source_missing_file(tmp_path):
    src = Source(str(tmp_path / "nope.csv"))
    with pytest.raises(JoinKitUserError) as ex:
        src.table()
    assert getattr(ex.value, "code", None) == "E_SOURCE_NOT_FOUND"


def test_source_read_error_is_wrapped(monkeypatch):
    def boom(*args, **kwargs):
        raise UnicodeDecodeError("utf-8", b"", 0, 1, "bad")

    monkeypatch.setattr("joinkit.models.sources.etl.fromcsv", boom)
    with pytest.raises(JoinKitUserError) as ex:
        Source(DATA_DIR / "flights.csv").table()
    assert getattr(ex.value, "code", None) == "E_SOURCE_READ"


def test_source_head_and_peek_schema_are_bounded():
    src = Source(DATA_DIR / "flights.csv")
    assert src.head(2).nrows == 2
    names = [f["name"] for f in src.peek_schema()["fields"]]
    assert names == ["year", "month", "day", "carrier", "flight", "tailnum", "origin", "dest"]


def test_source_str_has_preview():
    s = str(Source(DATA_DIR / "airlines.csv"))
    assert "Preview:" in s
    assert "carrier" in s


def test_source_descriptor_forms():
    assert _source_from_descriptor("airlines.csv").uri == "airlines.csv"
    src = _source_from_descriptor({"uri": "airlines.csv", "options": {"delimiter": ";"}, "na_values": ["?"]})
    assert src.options == {"delimiter": ";"}
    assert src.na_values == ("?",)
    with pytest.raises(JoinKitUserError) as ex:
        _source_from_descriptor(7)
    assert getattr(ex.value, "code", None) == "E_SOURCE_DESCRIPTOR"

