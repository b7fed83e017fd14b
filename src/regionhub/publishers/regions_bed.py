"""Write the linked-features BED file, optionally bgzipped and tabix indexed."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from regionhub.errors import CoordinateConversionFailure
from regionhub.linking.merge import MergeResult
from regionhub.publishers.base import Publisher

try:
    import pysam
except ImportError:  # pragma: no cover - exercised only when dependency missing
    pysam = None


logger = logging.getLogger(__name__)


class RegionsBedPublisher(Publisher):
    """Write header + sorted rows to ``output_path``.

    With ``compress`` the file is replaced by ``<output_path>.gz`` (BGZF) and a
    ``.tbi`` index is created next to it.
    """

    def __init__(self, *, output_path: str | Path, compress: bool = True) -> None:
        self.output_path = Path(output_path)
        self.compress = compress
        self.published_path: Path | None = None

    def publish(
        self,
        result: MergeResult,
        *,
        conversion_failures: Sequence[CoordinateConversionFailure] = (),
    ) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with self.output_path.open("w") as stream:
            for line in result.lines():
                stream.write(f"{line}\n")

        if not self.compress:
            self.published_path = self.output_path
            logger.info("Output file was saved as: %s", self.output_path)
            return

        if pysam is None:
            raise RuntimeError(
                "pysam is not installed. Add it to requirements before compressing region files."
            )

        indexed = pysam.tabix_index(
            str(self.output_path),
            preset="bed",
            force=True,
            keep_original=False,
        )
        self.published_path = Path(indexed)
        logger.info("Output file was saved as: %s", self.published_path)
