"""DuckDB + Parquet storage backend for merged region records."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from regionhub.models import STORAGE_COLUMNS, FinalRecord
from regionhub.storage.base import RegionStorage

try:
    import duckdb
except ImportError:  # pragma: no cover - exercised only when dependency missing
    duckdb = None


logger = logging.getLogger(__name__)

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class DuckDBParquetStorage(RegionStorage):
    """Write linked regions to a typed DuckDB table and export it as Parquet.

    Evidence fields become real columns: coordinates are ``BIGINT``, cell
    types, GTEx rsIDs and GTEx tissues are ``VARCHAR[]``. So a query like
    ``list_contains(tissues, 'K562')`` needs no JSON parsing. Fields an
    evidence source does not carry are ``NULL`` or an empty list.
    """

    def __init__(
        self,
        *,
        db_path: str | Path,
        parquet_path: str | Path,
        table_name: str = "linked_regions",
    ) -> None:
        if not _TABLE_RE.match(table_name):
            raise ValueError(f"Unsafe table name: {table_name}")

        self.db_path = Path(db_path)
        self.parquet_path = Path(parquet_path)
        self.table_name = table_name

    def create_table_sql(self) -> str:
        columns = ", ".join(f"{_quote(name)} {sql_type}" for name, sql_type in STORAGE_COLUMNS)
        return f"CREATE OR REPLACE TABLE {self.table_name} ({columns})"

    def insert_sql(self, frame_name: str) -> str:
        casts = ", ".join(
            f"CAST({_quote(name)} AS {sql_type})" for name, sql_type in STORAGE_COLUMNS
        )
        return f"INSERT INTO {self.table_name} SELECT {casts} FROM {frame_name}"

    def persist(self, records: Sequence[FinalRecord]) -> None:
        if not records:
            return

        if duckdb is None:
            raise RuntimeError(
                "duckdb is not installed. Add it to requirements before running region storage."
            )

        frame = pd.DataFrame(
            [record.to_row() for record in records],
            columns=[name for name, _ in STORAGE_COLUMNS],
        )

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.parquet_path.parent.mkdir(parents=True, exist_ok=True)

        connection = duckdb.connect(str(self.db_path))
        try:
            connection.register("region_frame", frame)
            connection.execute(self.create_table_sql())
            connection.execute(self.insert_sql("region_frame"))
            connection.unregister("region_frame")

            if self.parquet_path.exists():
                self.parquet_path.unlink()

            parquet_target = self.parquet_path.as_posix().replace("'", "''")
            connection.execute(
                f"COPY {self.table_name} TO '{parquet_target}' (FORMAT PARQUET)"
            )
        finally:
            connection.close()

        logger.info(
            "Stored %d linked regions in %s (table %s) and %s.",
            len(frame),
            self.db_path,
            self.table_name,
            self.parquet_path,
        )
