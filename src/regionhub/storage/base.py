"""Base class for linked-region storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from regionhub.models import FinalRecord


class RegionStorage(ABC):
    """Persists merged records for reproducible downstream queries."""

    @abstractmethod
    def persist(self, records: Sequence[FinalRecord]) -> None:
        """Persist records in backend-specific format."""
