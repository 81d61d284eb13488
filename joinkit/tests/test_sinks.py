import shutil

import pytest

from joinkit import MISSING, Sink, Source, Table, JoinKitUserError


def _planes():
    return Table({"tailnum": ["N14228", "N619AA"], "type": ["Fixed wing", MISSING]})


def test_sink_infers_csv_type(tmp_path):
    assert Sink(str(tmp_path / "out.csv")).type == "csv"


def test_sink_infer_type_failure():
    """Missing extension raises E_SINK_TYPE_INFER."""
    with pytest.raises(JoinKitUserError) as ex:
        Sink("out")
    assert getattr(ex.value, "code", None) == "E_SINK_TYPE_INFER"


def test_sink_rejects_unsupported_type(tmp_path):
    with pytest.raises(JoinKitUserError) as ex:
        Sink(str(tmp_path / "out.csv"), type="json")
    assert getattr(ex.value, "code", None) == "E_SINK_TYPE_UNSUPPORTED"


def test_sink_rejects_non_string_na_value(tmp_path):
    with pytest.raises(JoinKitUserError) as ex:
        Sink(str(tmp_path / "out.csv"), na_value=None)  # type: ignore[arg-type]
    assert getattr(ex.value, "code", None) == "E_SINK_NA_VALUE"


def test_sink_requires_existing_directory(tmp_path):
    """Nonexistent output directory raises E_SINK_DIR_NOT_FOUND."""
    with pytest.raises(JoinKitUserError) as ex:
        Sink(str(tmp_path / "missing" / "out.csv"))
    assert getattr(ex.value, "code", None) == "E_SINK_DIR_NOT_FOUND"


def test_sink_requires_writable_directory(monkeypatch, tmp_path):
    """Unwritable directory raises E_SINK_NOT_WRITABLE."""
    monkeypatch.setattr("joinkit.models.sinks.os.access", lambda path, mode: False)
    with pytest.raises(JoinKitUserError) as ex:
        Sink(str(tmp_path / "out.csv"))
    assert getattr(ex.value, "code", None) == "E_SINK_NOT_WRITABLE"


def test_sink_write_rechecks_directory(tmp_path):
    d = tmp_path / "out"
    d.mkdir()
    s = Sink(str(d / "planes.csv"))
    shutil.rmtree(d)
    with pytest.raises(JoinKitUserError) as ex:
        s.write(_planes())
    assert getattr(ex.value, "code", None) == "E_SINK_DIR_NOT_FOUND"


def test_sink_writes_missing_as_empty(tmp_path):
    out = tmp_path / "out.csv"
    Sink(str(out)).write(Table({"carrier": ["AA", "MQ"], "name": ["American", MISSING]}))
    assert out.read_text(encoding="utf-8").splitlines() == ["carrier,name", "AA,American", "MQ,"]


def test_sink_na_value_reads_back_as_missing(tmp_path):
    out = tmp_path / "planes.csv"
    Sink(str(out), na_value="NA").write(_planes())
    assert out.read_text(encoding="utf-8").splitlines() == ["tailnum,type", "N14228,Fixed wing", "N619AA,NA"]
    assert Source(str(out)).table() == _planes()


def test_sink_write_passes_options(monkeypatch, tmp_path):
    """write() delegates to petl.tocsv with the Sink options."""
    p = tmp_path / "out.csv"
    calls = []

    def fake_tocsv(table, uri, **opts):
        calls.append((uri, opts))

    monkeypatch.setattr("joinkit.models.sinks.etl.tocsv", fake_tocsv)
    Sink(str(p), options={"delimiter": ";"}).write(_planes())
    assert calls == [(str(p), {"delimiter": ";"})]


def test_sink_write_error_is_wrapped(monkeypatch, tmp_path):
    def boom(*args, **kwargs):
        raise PermissionError("locked")

    monkeypatch.setattr("joinkit.models.sinks.etl.tocsv", boom)
    with pytest.raises(JoinKitUserError) as ex:
        Sink(str(tmp_path / "out.csv")).write(_planes())
    assert getattr(ex.value, "code", None) == "E_SINK_WRITE"
    assert "2 row(s)" in str(ex.value)


def test_sink_str_formats_kind(tmp_path):
    msg = str(Sink(str(tmp_path / "out.csv")))
    assert "out.csv" in msg
    assert "kind=csv" in msg
