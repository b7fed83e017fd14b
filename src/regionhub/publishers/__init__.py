"""Output publishers for region builds."""

from .base import Publisher
from .failure_report import FailureReportPublisher
from .regions_bed import RegionsBedPublisher

__all__ = [
    "Publisher",
    "FailureReportPublisher",
    "RegionsBedPublisher",
]
