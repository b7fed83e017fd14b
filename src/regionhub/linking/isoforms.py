"""Attach APPRIS isoform importance to GENCODE gene-model records."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from regionhub.errors import EmptyInputError
from regionhub.models import ExonEvidence, GeneModelRecord


logger = logging.getLogger(__name__)

MINOR_ISOFORM_TAG = "Minor"
UNANNOTATED_TAG = "NA"


@dataclass
class IsoformImportanceTable:
    """``(gene_id, transcript_id) -> tag`` lookup with per-gene membership."""

    tags: dict[tuple[str, str], str] = field(default_factory=dict)
    genes: set[str] = field(default_factory=set)

    @classmethod
    def from_rows(cls, rows: Iterable[tuple[str, str, str]]) -> "IsoformImportanceTable":
        table = cls()
        for gene_id, transcript_id, tag in rows:
            table.tags[(gene_id, transcript_id)] = tag
            table.genes.add(gene_id)
        return table

    def __len__(self) -> int:
        return len(self.tags)

    def tag_for(self, gene_id: str, transcript_id: str | None) -> str:
        """Importance tag for a transcript.

        Unlisted transcripts of a listed gene are ``Minor``; records without a
        transcript, and genes absent from the table, are ``NA``.
        """

        if transcript_id is None or gene_id not in self.genes:
            return UNANNOTATED_TAG
        return self.tags.get((gene_id, transcript_id), MINOR_ISOFORM_TAG)


class IsoformAnnotationJoiner:
    stage = "isoform_annotation"

    def __init__(self, table: IsoformImportanceTable) -> None:
        self.table = table

    def join(self, records: Iterable[GeneModelRecord]) -> tuple[ExonEvidence, ...]:
        evidence = tuple(
            ExonEvidence(
                chromosome=record.chromosome,
                start=record.start,
                end=record.end,
                gene_id=record.gene_id,
                strand=record.strand,
                feature_class=record.feature_class,
                appris_tag=self.table.tag_for(record.gene_id, record.transcript_id),
                transcript_id=record.transcript_id,
                exon_id=record.exon_id,
            )
            for record in records
        )

        if not evidence:
            raise EmptyInputError(self.stage, "No GENCODE gene-model records to annotate.")

        logger.info("Number of Appris annotated GENCODE annotations: %d", len(evidence))
        return evidence
