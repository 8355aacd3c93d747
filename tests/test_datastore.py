"""Loading the record store through DuckDB and pandas."""

from __future__ import annotations

from io import BytesIO

import pandas as pd
import pytest
import requests

from crossview.core import Crossfilter, count_sum_reducer, field_value
from crossview.services import DataStore, Metrics

pytestmark = pytest.mark.integration


@pytest.fixture
def config(tmp_path) -> dict:
    return {
        "DUCKDB_PATH": tmp_path / "db" / "warehouse.duckdb",
        "CSV_GLOB": str(tmp_path / "*.csv"),
        "DATA_PATH": str(tmp_path / "records.parquet"),
        "DATE_COL": "dd",
        "DATE_FMT": "%Y-%m-%d",
        "BUCKET_URL": None,
        "BUCKET_KEY": None,
    }


@pytest.fixture
def metrics() -> Metrics:
    return Metrics({"kwh": "Energy"})


def test_loads_csv_through_duckdb(tmp_path, config, metrics) -> None:
    """CSV rows land in prod.records; unparseable readings become None."""

    (tmp_path / "readings.csv").write_text(
        "dd,kwh,loc\n2024-01-01,5,north\n2024-01-02,abc,south\n2024-01-02,7,south\n"
    )
    datastore = DataStore(config, metrics)

    store = datastore.records()

    assert len(store) == 3
    assert sorted(r["kwh"] for r in store if r["kwh"] is not None) == [5.0, 7.0]
    assert sum(1 for r in store if r["kwh"] is None) == 1
    assert all(isinstance(r["dd"], pd.Timestamp) for r in store)

    kwh = Crossfilter(store).dimension(field_value("kwh"))
    assert kwh.keys() == [5.0, 7.0]


def test_identical_rows_stay_separate_records(tmp_path, config, metrics) -> None:
    """Two readings that match field for field are still two events."""

    (tmp_path / "readings.csv").write_text("dd,kwh\n2024-01-01,5\n2024-01-01,5\n")

    store = DataStore(config, metrics).records()

    assert len(store) == 2
    totals = Crossfilter(store).group_all(count_sum_reducer("kwh"))
    assert totals.value_all() == (2, 10)


def test_set_df_persists_to_duckdb(config, metrics) -> None:
    datastore = DataStore(config, metrics)
    datastore.set_df(pd.DataFrame({"dd": ["2024-02-01", "2024-02-02"], "kwh": [1, 2]}))

    df = datastore.get()
    assert len(df) == 2
    assert datastore.run_query("SELECT SUM(kwh) AS s FROM prod.records;")["s"].iloc[0] == 3


def test_local_parquet_is_used_without_csv(config, metrics) -> None:
    pd.DataFrame({"dd": pd.to_datetime(["2024-03-01"]), "kwh": [4.0]}).to_parquet(
        config["DATA_PATH"], index=False
    )

    store = DataStore(config, metrics).records()

    assert len(store) == 1
    assert store[0]["kwh"] == 4.0


def test_remote_parquet_fallback(monkeypatch, config, metrics) -> None:
    buf = BytesIO()
    pd.DataFrame({"dd": pd.to_datetime(["2024-04-01"]), "kwh": [9.0]}).to_parquet(buf, index=False)

    class FakeResponse:
        content = buf.getvalue()

        def raise_for_status(self):
            return None

    calls = []

    def fake_get(url, headers=None, timeout=None):
        calls.append((url, headers))
        return FakeResponse()

    monkeypatch.setattr(requests, "get", fake_get)
    config["BUCKET_URL"] = "https://bucket.example/records.parquet"
    config["BUCKET_KEY"] = "secret"

    store = DataStore(config, metrics).records()

    assert calls == [("https://bucket.example/records.parquet", {"apikey": "secret"})]
    assert store[0]["kwh"] == 9.0


def test_no_source_gives_empty_store(monkeypatch, config, metrics) -> None:
    def failing_get(url, headers=None, timeout=None):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(requests, "get", failing_get)
    config["BUCKET_URL"] = "https://bucket.example/records.parquet"

    datastore = DataStore(config, metrics)

    assert datastore.get().empty
    assert len(datastore.records()) == 0


def test_csv_to_parquet_script(tmp_path) -> None:
    from csv_to_parquet import csv_to_parquet

    (tmp_path / "in.csv").write_text("dd,kwh\n2024-01-01,1\n")

    out = csv_to_parquet("in.csv", data_dir=str(tmp_path))

    assert pd.read_parquet(out)["kwh"].tolist() == [1]
    with pytest.raises(FileNotFoundError):
        csv_to_parquet("missing.csv", data_dir=str(tmp_path))
