"""Data access: load the dataset once and hand it out as a RecordStore."""

from __future__ import annotations

import glob
import logging
import os
from io import BytesIO
from typing import Any, Mapping, Optional

import duckdb
import numpy as np
import pandas as pd
import requests

from crossview.core import RecordStore

from .metrics import Metrics

logger = logging.getLogger("crossview.datastore")


class DataStore:
    """Own data loading, preprocessing and in-memory caching.

    Storage backend: DuckDB (.duckdb file)
    - Source data: CSV files matched by Config.CSV_GLOB
    - Materialized table: prod.records

    Fallbacks, in order: local parquet at DATA_PATH, remote parquet at
    BUCKET_URL, then an empty frame.
    """

    def __init__(self, config: Mapping[str, Any], metrics: Metrics):
        self.config = config
        self.metrics = metrics
        self._df: Optional[pd.DataFrame] = None
        self._con: Optional[duckdb.DuckDBPyConnection] = None

    # ---------- DuckDB helpers ----------

    def _connect(self) -> duckdb.DuckDBPyConnection:
        if self._con is None:
            db_path = str(self.config.get("DUCKDB_PATH"))
            parent = os.path.dirname(db_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            self._con = duckdb.connect(db_path)
        return self._con

    def _table_exists(self) -> bool:
        con = self._connect()
        try:
            return bool(
                con.execute(
                    "SELECT COUNT(*) FROM information_schema.tables "
                    "WHERE table_schema='prod' AND table_name='records';"
                ).fetchone()[0]
            )
        except duckdb.Error:
            return False

    def rebuild_from_csv(self) -> bool:
        """Full rebuild of prod.records from CSVs matched by CSV_GLOB.

        Returns False when no CSV matched.
        """
        con = self._connect()
        csv_glob = str(self.config.get("CSV_GLOB", "data/*.csv"))
        date_col = self.config.get("DATE_COL", "dd")
        date_fmt = self.config.get("DATE_FMT", "%Y-%m-%d")

        files = glob.glob(csv_glob)
        if not files:
            logger.warning("No CSV files found for glob %s; prod.records not built", csv_glob)
            return False

        logger.info("Building prod.records from %d CSV file(s): %s", len(files), csv_glob)
        con.execute("CREATE SCHEMA IF NOT EXISTS prod;")
        con.execute("DROP TABLE IF EXISTS prod.records;")
        source = csv_glob.replace("'", "''")
        con.execute(
            f"CREATE TEMP TABLE raw_records AS SELECT * FROM read_csv_auto('{source}', HEADER=TRUE);"
        )
        columns = [row[0] for row in con.execute("DESCRIBE raw_records;").fetchall()]
        if date_col in columns:
            con.execute(
                f"""
                CREATE TABLE prod.records AS
                SELECT
                  CAST(try_strptime(CAST("{date_col}" AS VARCHAR), '{date_fmt}') AS DATE) AS "{date_col}",
                  * EXCLUDE ("{date_col}")
                FROM raw_records;
                """
            )
        else:
            logger.warning("Date column %r missing from CSV input", date_col)
            con.execute("CREATE TABLE prod.records AS SELECT * FROM raw_records;")
        con.execute("DROP TABLE raw_records;")

        con.execute("ANALYZE;")
        logger.info("DuckDB table prod.records rebuilt and analyzed.")
        self._df = None
        return True

    def run_query(self, sql: str, params=None) -> pd.DataFrame:
        """Execute SQL on DuckDB and return as pandas DataFrame."""
        con = self._connect()
        return con.execute(sql, params or []).df()

    # ---------- pandas ----------

    def _preprocess(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.reset_index(drop=True)

        date_col = self.config.get("DATE_COL")
        if (
            date_col
            and date_col in df.columns
            and not pd.api.types.is_datetime64_any_dtype(df[date_col])
        ):
            fmt = self.config.get("DATE_FMT") if pd.api.types.is_string_dtype(df[date_col]) else None
            df[date_col] = pd.to_datetime(df[date_col], errors="coerce", format=fmt)

        # non-numeric and infinite values become NaN; the dimensions skip them
        for numcol in self.metrics.mapping.keys():
            if numcol in df.columns:
                df[numcol] = pd.to_numeric(df[numcol], errors="coerce").replace(
                    [np.inf, -np.inf], np.nan
                )

        return df

    def _fetch_remote(self) -> Optional[pd.DataFrame]:
        url = self.config.get("BUCKET_URL")
        if not url:
            return None
        headers = {"apikey": self.config.get("BUCKET_KEY") or ""}
        try:
            resp = requests.get(url, headers=headers, timeout=60)
            resp.raise_for_status()
        except (requests.HTTPError, requests.ConnectionError, requests.Timeout) as e:
            logger.error("Failed to fetch remote file from BUCKET_URL: %s", e)
            return None
        logger.info("Loaded remote parquet from BUCKET_URL.")
        return pd.read_parquet(BytesIO(resp.content))

    def load(self) -> pd.DataFrame:
        if self._df is not None:
            return self._df

        if self._table_exists() or self.rebuild_from_csv():
            try:
                raw = self.run_query("SELECT * FROM prod.records;")
                logger.info("Loaded %d row(s) from DuckDB prod.records.", len(raw))
                self._df = self._preprocess(raw)
                return self._df
            except duckdb.Error as e:
                logger.warning("DuckDB table load failed: %s", e)

        data_path = self.config.get("DATA_PATH")
        if data_path and os.path.isfile(str(data_path)):
            logger.info("Loading local parquet %s", data_path)
            self.set_df(pd.read_parquet(data_path))
            return self._df

        raw = self._fetch_remote()
        if raw is not None:
            self.set_df(raw)
            return self._df

        logger.error("No data source succeeded; starting with an empty record store.")
        self._df = None
        return pd.DataFrame()

    def set_df(self, df: pd.DataFrame) -> None:
        self._df = self._preprocess(df)
        logger.info("DataStore loaded %d row(s) in memory.", len(self._df))

        date_col = self.config.get("DATE_COL", "dd")

        con = self._connect()
        con.execute("CREATE SCHEMA IF NOT EXISTS prod;")
        con.execute("DROP TABLE IF EXISTS prod.records;")
        con.register("tmp_df", self._df)
        if date_col in self._df.columns:
            con.execute(f"""
                CREATE TABLE prod.records AS
                SELECT
                  CAST("{date_col}" AS DATE) AS "{date_col}",
                  * EXCLUDE ("{date_col}")
                FROM tmp_df;
            """)
        else:
            con.execute("CREATE TABLE prod.records AS SELECT * FROM tmp_df;")
        con.unregister("tmp_df")
        con.execute("ANALYZE;")
        logger.info("Persisted DataFrame into DuckDB prod.records.")

    def get(self, copy: bool = True) -> pd.DataFrame:
        df = self.load()
        return df.copy(deep=False) if copy else df

    def records(self) -> RecordStore:
        """The loaded dataset as an immutable RecordStore."""
        return RecordStore.from_frame(self.get(copy=False))


__all__ = ["DataStore"]
