"""Side-channel reports for evidence that did not make it into the output."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path

from regionhub.errors import CoordinateConversionFailure
from regionhub.linking.merge import MergeResult
from regionhub.publishers.base import Publisher


logger = logging.getLogger(__name__)


class FailureReportPublisher(Publisher):
    """Write unresolved gene references and failed liftover intervals.

    ``report_path`` gets one ``gene_id<TAB>source<TAB>payload`` line per
    unresolved record. ``failed_liftover_path``, when given, mirrors the
    liftOver unmapped format: a ``#reason`` line before each interval.
    """

    def __init__(
        self,
        *,
        report_path: str | Path,
        failed_liftover_path: str | Path | None = None,
    ) -> None:
        self.report_path = Path(report_path)
        self.failed_liftover_path = Path(failed_liftover_path) if failed_liftover_path else None

    def publish(
        self,
        result: MergeResult,
        *,
        conversion_failures: Sequence[CoordinateConversionFailure] = (),
    ) -> None:
        self.report_path.parent.mkdir(parents=True, exist_ok=True)
        with self.report_path.open("w") as stream:
            for failure in result.failures:
                payload = json.dumps(failure.payload, separators=(",", ":"))
                stream.write(f"{failure.gene_id}\t{failure.source}\t{payload}\n")
        logger.info("Wrote %d lost associations to %s", len(result.failures), self.report_path)

        if self.failed_liftover_path is None:
            return

        self.failed_liftover_path.parent.mkdir(parents=True, exist_ok=True)
        with self.failed_liftover_path.open("w") as stream:
            for failure in conversion_failures:
                stream.write(f"#{failure.reason or 'Unmapped'}\n")
                stream.write(f"{failure.interval.to_bed_line()}\n")
        logger.info(
            "Wrote %d failed liftover intervals to %s",
            len(conversion_failures),
            self.failed_liftover_path,
        )
