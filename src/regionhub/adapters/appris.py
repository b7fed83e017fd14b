"""Adapter for the APPRIS principal isoform table."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from pathlib import Path

from regionhub.adapters.base import DataAdapter
from regionhub.adapters.common import open_text, strip_version


logger = logging.getLogger(__name__)

# gene name, gene id, transcript id, CCDS id, then e.g. PRINCIPAL:1 or ALTERNATIVE:2
_APPRIS_LINE_RE = re.compile(r"(ENSG\S+)\s+(ENST\S+)\s.*?\s*(\S+):\S*\s*$")


class ApprisTableAdapter(DataAdapter):
    """Yield ``(gene_id, transcript_id, tag)`` from ``appris_data.principal.txt``.

    The tag is the label before the colon of the last column (``PRINCIPAL``,
    ``ALTERNATIVE``). Identifiers are returned without version suffixes.
    """

    name = "appris_principal"

    def __init__(self, *, table_path: str | Path) -> None:
        self.table_path = Path(table_path)
        self.skipped_lines = 0

    def read(self) -> Iterator[tuple[str, str, str]]:
        self.skipped_lines = 0
        with open_text(self.table_path) as stream:
            for line in stream:
                if not line.strip() or line.startswith("#"):
                    continue
                match = _APPRIS_LINE_RE.search(line)
                if match is None:
                    self.skipped_lines += 1
                    logger.debug("Skipping unparseable APPRIS line: %r", line)
                    continue
                gene_id, transcript_id, tag = match.groups()
                yield strip_version(gene_id), strip_version(transcript_id), tag
