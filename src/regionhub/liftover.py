"""Coordinate conversion between genome assemblies."""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from regionhub.errors import (
    ConfigError,
    CoordinateConversionFailure,
    LiftoverError,
    MalformedRecordError,
)
from regionhub.models import Interval


logger = logging.getLogger(__name__)


@dataclass
class LiftoverResult:
    """Converted intervals plus the ones that could not be mapped."""

    mapped: list[Interval] = field(default_factory=list)
    failed: list[CoordinateConversionFailure] = field(default_factory=list)


class CoordinateConverter(ABC):
    """Converts intervals from a source assembly to the target assembly.

    Implementations must keep each interval's payload untouched and must return
    failed intervals in their original source coordinates.
    """

    @abstractmethod
    def convert(self, intervals: Sequence[Interval]) -> LiftoverResult:
        """Convert ``intervals``; never raises for individual unmappable intervals."""


class UcscLiftOver(CoordinateConverter):
    """Run the UCSC ``liftOver`` binary against a chain file."""

    def __init__(
        self,
        *,
        chain_file: str | Path,
        executable: str = "liftOver",
        min_match: float | None = None,
    ) -> None:
        self.chain_file = Path(chain_file)
        self.executable = executable
        self.min_match = min_match

    def convert(self, intervals: Sequence[Interval]) -> LiftoverResult:
        if not intervals:
            return LiftoverResult()

        binary = shutil.which(self.executable)
        if binary is None:
            raise ConfigError(f"{self.executable} is not in PATH. Install it before proceeding.")
        if not self.chain_file.exists():
            raise ConfigError(f"Chain file not found: {self.chain_file}")

        with tempfile.TemporaryDirectory(prefix="regionhub_liftover_") as workdir:
            work = Path(workdir)
            source_bed = work / "source.bed"
            mapped_bed = work / "mapped.bed"
            unmapped_bed = work / "unmapped.bed"

            source_bed.write_text("".join(f"{item.to_bed_line()}\n" for item in intervals))

            command = [binary]
            if self.min_match is not None:
                command.append(f"-minMatch={self.min_match}")
            command.extend(
                [str(source_bed), str(self.chain_file), str(mapped_bed), str(unmapped_bed)]
            )
            logger.debug("Running %s", " ".join(command))
            try:
                subprocess.run(command, check=True, capture_output=True, text=True)
            except subprocess.CalledProcessError as exc:
                detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
                raise LiftoverError(f"{self.executable} failed: {detail}") from exc

            result = LiftoverResult(
                mapped=list(read_bed_intervals(mapped_bed)),
                failed=list(read_unmapped(unmapped_bed)),
            )

        logger.info(
            "Liftover finished: %d mapped, %d failed.", len(result.mapped), len(result.failed)
        )
        return result


def parse_bed_line(line: str) -> Interval:
    fields = line.rstrip("\n").split("\t")
    if len(fields) < 3:
        raise MalformedRecordError(f"BED line has fewer than 3 columns: {line!r}")
    try:
        start, end = int(fields[1]), int(fields[2])
    except ValueError as exc:
        raise MalformedRecordError(f"Non-integer BED coordinates: {line!r}") from exc
    payload = fields[3] if len(fields) > 3 else ""
    return Interval(chromosome=fields[0], start=start, end=end, payload=payload)


def read_bed_intervals(path: Path) -> Iterator[Interval]:
    if not path.exists():
        return
    with path.open() as stream:
        for line in stream:
            if line.strip() and not line.startswith("#"):
                yield parse_bed_line(line)


def read_unmapped(path: Path) -> Iterator[CoordinateConversionFailure]:
    """Parse liftOver's unmapped file, where ``#reason`` lines precede each interval."""

    if not path.exists():
        return
    reason = ""
    with path.open() as stream:
        for line in stream:
            if not line.strip():
                continue
            if line.startswith("#"):
                reason = line[1:].strip()
                continue
            yield CoordinateConversionFailure(interval=parse_bed_line(line), reason=reason)
            reason = ""
