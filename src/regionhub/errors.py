"""Error taxonomy for region builds.

Only :class:`EmptyInputError`, :class:`ConfigError` and :class:`LiftoverError`
abort a run. Per-record problems are absorbed where they occur and surface as
counts in the run report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from regionhub.models import Interval


class RegionHubError(Exception):
    """Base class for all regionhub exceptions."""


class ConfigError(RegionHubError):
    """Raised when a build configuration is invalid or points at missing inputs."""


class EmptyInputError(RegionHubError):
    """A stage produced no output where at least one record was expected."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"[{stage}] {message}")
        self.stage = stage
        self.message = message


class MalformedRecordError(RegionHubError):
    """A single raw record could not be parsed into its expected shape."""


class LiftoverError(RegionHubError):
    """The coordinate conversion tool itself failed to run."""


@dataclass(frozen=True)
class UnresolvedGeneReference:
    """Evidence whose gene id has no entry in the canonical gene table."""

    gene_id: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CoordinateConversionFailure:
    """Interval that the liftover collaborator could not convert."""

    interval: Interval
    reason: str = ""
