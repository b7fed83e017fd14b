"""Input adapters for region builds."""

from .appris import ApprisTableAdapter
from .base import DataAdapter
from .gencode import GencodeGtfAdapter
from .gtex import GtexEqtlAdapter
from .regulation import EnsemblRegulationAdapter

__all__ = [
    "DataAdapter",
    "ApprisTableAdapter",
    "GencodeGtfAdapter",
    "GtexEqtlAdapter",
    "EnsemblRegulationAdapter",
]
