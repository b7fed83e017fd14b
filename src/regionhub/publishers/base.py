"""Publisher interface for region build outputs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from regionhub.errors import CoordinateConversionFailure
from regionhub.linking.merge import MergeResult


class Publisher(ABC):
    """Publishes a merged build into consumer-facing artifacts."""

    @abstractmethod
    def publish(
        self,
        result: MergeResult,
        *,
        conversion_failures: Sequence[CoordinateConversionFailure] = (),
    ) -> None:
        """Write ``result`` (and any side-channel diagnostics) to output targets."""
