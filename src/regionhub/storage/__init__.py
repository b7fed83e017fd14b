"""Storage backends for merged region records."""

from .base import RegionStorage
from .duckdb_parquet import DuckDBParquetStorage

__all__ = ["RegionStorage", "DuckDBParquetStorage"]
