"""Join evidence onto canonical gene coordinates and produce the sorted output."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from regionhub.chromosomes import chromosome_sort_key
from regionhub.config import OUTPUT_COLUMNS, SourceVersions
from regionhub.errors import EmptyInputError, UnresolvedGeneReference
from regionhub.models import EvidenceRecord, FinalRecord, GeneRecord


logger = logging.getLogger(__name__)


def build_header(versions: SourceVersions) -> tuple[str, ...]:
    """Comment block written above the data rows."""

    return (
        f"# Regions file for burden testing. Created: {versions.created}",
        "#",
        f"# GENCODE version: v.{versions.gencode}",
        f"# Ensembl version: v.{versions.ensembl}",
        f"# GTEx version: {versions.gtex}",
        "#",
        "# " + "\t".join(OUTPUT_COLUMNS),
    )


@dataclass
class GeneIndex:
    """In-memory ``gene_id -> GeneRecord`` lookup; the first record of an id wins."""

    by_id: dict[str, GeneRecord] = field(default_factory=dict)
    duplicates: int = 0

    @classmethod
    def build(cls, genes: Iterable[GeneRecord]) -> "GeneIndex":
        index = cls()
        for gene in genes:
            if gene.gene_id in index.by_id:
                index.duplicates += 1
                continue
            index.by_id[gene.gene_id] = gene
        if index.duplicates:
            logger.warning(
                "Ignored %d gene records with an already indexed gene id.", index.duplicates
            )
        return index

    @property
    def genes(self) -> tuple[GeneRecord, ...]:
        return tuple(self.by_id.values())

    def get(self, gene_id: str) -> GeneRecord | None:
        return self.by_id.get(gene_id)

    def __len__(self) -> int:
        return len(self.by_id)


@dataclass(frozen=True)
class MergeResult:
    """Sorted output rows plus every evidence record that could not be placed."""

    header: tuple[str, ...]
    records: tuple[FinalRecord, ...]
    failures: tuple[UnresolvedGeneReference, ...]
    linked_by_source: dict[str, int] = field(default_factory=dict)

    @property
    def lost_genes(self) -> set[str]:
        return {failure.gene_id for failure in self.failures}

    @property
    def lost_sources(self) -> list[str]:
        return sorted({failure.source for failure in self.failures})

    def lines(self) -> list[str]:
        return [*self.header, *(record.to_line() for record in self.records)]


class MergeEngine:
    """Index genes, stream-join every evidence record, then sort.

    Evidence whose gene id is missing from the gene index is diverted to the
    failure list; only an empty joined output is fatal.
    """

    stage = "merge"

    def __init__(self, versions: SourceVersions | None = None) -> None:
        self.versions = versions or SourceVersions()

    def merge(
        self,
        genes: GeneIndex | Iterable[GeneRecord],
        *evidence_streams: Iterable[EvidenceRecord],
    ) -> MergeResult:
        index = genes if isinstance(genes, GeneIndex) else GeneIndex.build(genes)

        joined: list[FinalRecord] = []
        failures: list[UnresolvedGeneReference] = []
        linked: Counter[str] = Counter()

        for stream in evidence_streams:
            for evidence in stream:
                gene = index.get(evidence.gene_id)
                if gene is None:
                    failures.append(
                        UnresolvedGeneReference(
                            gene_id=evidence.gene_id,
                            source=evidence.source,
                            payload=evidence.to_payload(),
                        )
                    )
                    logger.debug("%s : gene was not found in GENCODE", evidence.gene_id)
                    continue

                joined.append(
                    FinalRecord(
                        chromosome=gene.chromosome,
                        start=gene.start,
                        end=gene.end,
                        gene_id=gene.gene_id,
                        annotation=evidence,
                    )
                )
                linked[evidence.source] += 1

        joined.sort(key=lambda record: (chromosome_sort_key(record.chromosome), record.start))

        if not joined:
            raise EmptyInputError(
                self.stage,
                f"No evidence could be joined to a gene ({len(failures)} unresolved records).",
            )

        result = MergeResult(
            header=build_header(self.versions),
            records=tuple(joined),
            failures=tuple(failures),
            linked_by_source=dict(linked),
        )
        logger.info("Total number of lines in the final file: %d", len(result.records))
        if failures:
            logger.warning(
                "Number of lost associations: %d, belonging to %d genes in the following "
                "sources: %s",
                len(failures),
                len(result.lost_genes),
                ", ".join(result.lost_sources),
            )
        return result
