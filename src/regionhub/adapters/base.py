"""Base interface for all source adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any


class DataAdapter(ABC):
    """Adapter that converts a raw source dataset into in-memory records."""

    name: str

    @abstractmethod
    def read(self) -> Iterable[Any]:
        """Yield records from the adapter source."""
