"""Adapter for GENCODE comprehensive annotation GTF files."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from regionhub.adapters.base import DataAdapter
from regionhub.adapters.common import (
    GTF_COLUMNS,
    TabularAdapterMixin,
    parse_gtf_attributes,
    read_tab_chunks,
    strip_version,
)
from regionhub.chromosomes import with_chr_prefix
from regionhub.config import EXCLUDED_GENE_MODEL_FEATURES
from regionhub.models import GeneModelRecord, GeneRecord


logger = logging.getLogger(__name__)


class GencodeGtfAdapter(DataAdapter, TabularAdapterMixin):
    """Read gene models and gene coordinates from a GENCODE GTF.

    :meth:`read` yields every gene-model row (genes, transcripts, exons, UTRs,
    CDS) except the pseudo-features in ``excluded_features``; :meth:`genes`
    yields one :class:`GeneRecord` per ``gene`` row.
    """

    name = "gencode_gtf"

    def __init__(
        self,
        *,
        gtf_path: str | Path,
        excluded_features: Iterable[str] = EXCLUDED_GENE_MODEL_FEATURES,
        chunksize: int = 100_000,
    ) -> None:
        self.gtf_path = Path(gtf_path)
        self.excluded_features = frozenset(excluded_features)
        self.chunksize = chunksize
        self.skipped_rows = 0
        self.skipped_gene_rows = 0

    def read(self) -> Iterator[GeneModelRecord]:
        self.skipped_rows = 0
        for row in self._rows():
            if row.get("feature") in self.excluded_features:
                continue
            record = self._to_gene_model(row)
            if record is None:
                self.skipped_rows += 1
                continue
            yield record

    def genes(self) -> Iterator[GeneRecord]:
        self.skipped_gene_rows = 0
        for row in self._rows():
            if row.get("feature") != "gene":
                continue

            start = self._to_int(row.get("start"))
            end = self._to_int(row.get("end"))
            attributes = parse_gtf_attributes(row.get("attributes"))
            gene_id = attributes.get("gene_id", "")
            chromosome = self._to_string(row.get("seqname"))
            if start is None or end is None or chromosome is None or not gene_id:
                self.skipped_gene_rows += 1
                logger.debug("Skipping malformed gene row: %s", row)
                continue

            yield GeneRecord(
                chromosome=with_chr_prefix(chromosome),
                start=start,
                end=end,
                gene_id=strip_version(gene_id),
                gene_name=attributes.get("gene_name", ""),
            )

    def _rows(self) -> Iterator[dict[str, Any]]:
        for frame in read_tab_chunks(self.gtf_path, names=GTF_COLUMNS, chunksize=self.chunksize):
            yield from frame.to_dict(orient="records")

    def _to_gene_model(self, row: dict[str, Any]) -> GeneModelRecord | None:
        attributes = parse_gtf_attributes(row.get("attributes"))
        gene_id = attributes.get("gene_id", "")
        if not gene_id.startswith("ENSG"):
            return None

        chromosome = self._to_string(row.get("seqname"))
        start = self._to_int(row.get("start"))
        end = self._to_int(row.get("end"))
        if chromosome is None or start is None or end is None:
            return None

        transcript_id = attributes.get("transcript_id")
        exon_id = attributes.get("exon_id")

        return GeneModelRecord(
            chromosome=with_chr_prefix(chromosome),
            start=start,
            end=end,
            strand=self._to_string(row.get("strand")) or ".",
            feature_class=self._to_string(row.get("feature")) or "",
            gene_id=strip_version(gene_id),
            transcript_id=(
                strip_version(transcript_id)
                if transcript_id and transcript_id.startswith("ENST")
                else None
            ),
            exon_id=strip_version(exon_id) if exon_id and exon_id.startswith("ENSE") else None,
        )
