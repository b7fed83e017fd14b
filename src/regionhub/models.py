"""Canonical in-memory data models used by region builds."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping

from regionhub.errors import MalformedRecordError


@dataclass(frozen=True)
class Interval:
    """Half-open genomic interval with an opaque text payload.

    This is the unit exchanged with the liftover collaborator.
    """

    chromosome: str
    start: int
    end: int
    payload: str = ""

    def to_bed_line(self) -> str:
        return f"{self.chromosome}\t{self.start}\t{self.end}\t{self.payload}"


@dataclass(frozen=True)
class GeneRecord:
    """Canonical gene coordinate, one per versionless Ensembl gene id."""

    chromosome: str
    start: int
    end: int
    gene_id: str
    gene_name: str


@dataclass(frozen=True)
class GeneModelRecord:
    """One GENCODE gene/transcript/exon/UTR/CDS row."""

    chromosome: str
    start: int
    end: int
    strand: str
    feature_class: str
    gene_id: str
    transcript_id: str | None = None
    exon_id: str | None = None


@dataclass(frozen=True)
class RegulatoryActivityRecord:
    """A regulatory feature reported active in one cell type."""

    cell_type: str
    chromosome: str
    start: int
    end: int
    feature_id: str
    feature_class: str
    bound_start: int | None = None
    bound_end: int | None = None


@dataclass(frozen=True)
class RegulatoryFeature:
    """A regulatory feature with the set of cell types it is active in."""

    chromosome: str
    start: int
    end: int
    feature_id: str
    feature_class: str
    tissues: frozenset[str] = frozenset()


@dataclass(frozen=True)
class EqtlRecord:
    """Single variant-gene association parsed from a GTEx ``snpgenes`` row."""

    rsid: str
    chromosome: str
    position: int
    ref: str
    alt: str
    build: str
    gene_id: str
    tissue: str | None = None


@dataclass(frozen=True)
class ExpressionLink:
    """All gene/tissue associations of one variant."""

    rsid: str
    chromosome: str
    position: int
    genes: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def to_intervals(self) -> list[Interval]:
        """One single-base interval per linked gene, ready for liftover."""

        return [
            Interval(
                chromosome=self.chromosome,
                start=self.position - 1,
                end=self.position,
                payload=format_variant_payload(gene_id, self.rsid, tissues),
            )
            for gene_id, tissues in self.genes.items()
        ]


def format_variant_payload(gene_id: str, rsid: str, tissues: frozenset[str] | set[str]) -> str:
    return f"gene={gene_id};rsID={rsid};tissue={'|'.join(sorted(tissues))}"


def parse_variant_payload(payload: str) -> tuple[str, str, frozenset[str]]:
    """Inverse of :func:`format_variant_payload`."""

    fields: dict[str, str] = {}
    for part in payload.split(";"):
        key, sep, value = part.partition("=")
        if not sep:
            raise MalformedRecordError(f"Variant payload field without '=': {part!r}")
        fields[key] = value

    gene_id = fields.get("gene")
    rsid = fields.get("rsID")
    if not gene_id or not rsid:
        raise MalformedRecordError(f"Variant payload misses gene or rsID: {payload!r}")

    tissues = frozenset(item for item in fields.get("tissue", "").split("|") if item)
    return gene_id, rsid, tissues


# Column name and DuckDB type of a stored region row, in table order.
STORAGE_COLUMNS: tuple[tuple[str, str], ...] = (
    ("chromosome", "VARCHAR"),
    ("start", "BIGINT"),
    ("end", "BIGINT"),
    ("gene_id", "VARCHAR"),
    ("source", "VARCHAR"),
    ("feature_chromosome", "VARCHAR"),
    ("feature_start", "BIGINT"),
    ("feature_end", "BIGINT"),
    ("feature_class", "VARCHAR"),
    ("feature_id", "VARCHAR"),
    ("gene_name", "VARCHAR"),
    ("strand", "VARCHAR"),
    ("transcript_id", "VARCHAR"),
    ("exon_id", "VARCHAR"),
    ("appris", "VARCHAR"),
    ("tissues", "VARCHAR[]"),
    ("gtex_rsids", "VARCHAR[]"),
    ("gtex_tissues", "VARCHAR[]"),
)


class EvidenceRecord(ABC):
    """Links one genomic region to one gene; ``source`` tags the evidence channel."""

    source: ClassVar[str]
    gene_id: str

    @abstractmethod
    def to_payload(self) -> dict[str, Any]:
        """Serialize into the annotation object written to the output file."""

    @abstractmethod
    def to_columns(self) -> dict[str, Any]:
        """Typed values for the storage columns this evidence channel fills."""


@dataclass(frozen=True)
class ExonEvidence(EvidenceRecord):
    """GENCODE feature tagged with its APPRIS isoform importance."""

    source: ClassVar[str] = "GENCODE"

    chromosome: str
    start: int
    end: int
    gene_id: str
    strand: str
    feature_class: str
    appris_tag: str
    transcript_id: str | None = None
    exon_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "chr": self.chromosome,
            "start": self.start,
            "end": self.end,
            "source": self.source,
            "strand": self.strand,
            "class": self.feature_class,
            "gene_ID": self.gene_id,
            "appris": self.appris_tag,
        }
        if self.transcript_id is not None:
            payload["transcript_ID"] = self.transcript_id
        if self.exon_id is not None:
            payload["exon_ID"] = self.exon_id
        return payload

    def to_columns(self) -> dict[str, Any]:
        return {
            "feature_chromosome": self.chromosome,
            "feature_start": self.start,
            "feature_end": self.end,
            "feature_class": self.feature_class,
            "strand": self.strand,
            "transcript_id": self.transcript_id,
            "exon_id": self.exon_id,
            "appris": self.appris_tag,
        }


@dataclass(frozen=True)
class ExpressionEvidence(EvidenceRecord):
    """Regulatory feature linked to a gene through overlapping eQTL variants."""

    source: ClassVar[str] = "GTEx"

    gene_id: str
    feature_class: str
    chromosome: str
    start: int
    end: int
    feature_id: str
    tissues: frozenset[str] = frozenset()
    linked_rsids: frozenset[str] = frozenset()
    linked_tissues: frozenset[str] = frozenset()

    def to_payload(self) -> dict[str, Any]:
        return {
            "gene_ID": self.gene_id,
            "class": self.feature_class,
            "source": self.source,
            "chr": self.chromosome,
            "start": self.start,
            "end": self.end,
            "regulatory_ID": self.feature_id,
            "Tissues": sorted(self.tissues),
            "GTEx_rsIDs": sorted(self.linked_rsids),
            "GTEx_tissues": sorted(self.linked_tissues),
        }

    def to_columns(self) -> dict[str, Any]:
        return {
            "feature_chromosome": self.chromosome,
            "feature_start": self.start,
            "feature_end": self.end,
            "feature_class": self.feature_class,
            "feature_id": self.feature_id,
            "tissues": sorted(self.tissues),
            "gtex_rsids": sorted(self.linked_rsids),
            "gtex_tissues": sorted(self.linked_tissues),
        }


@dataclass(frozen=True)
class OverlapEvidence(EvidenceRecord):
    """Regulatory feature linked to a gene by direct genomic overlap."""

    source: ClassVar[str] = "overlap"

    gene_id: str
    gene_name: str
    chromosome: str
    start: int
    end: int
    feature_class: str
    feature_id: str
    tissues: frozenset[str] = frozenset()

    def to_payload(self) -> dict[str, Any]:
        return {
            "chr": self.chromosome,
            "start": self.start,
            "end": self.end,
            "class": self.feature_class,
            "gene_ID": self.gene_id,
            "gene_name": self.gene_name,
            "Tissues": sorted(self.tissues),
            "regulatory_ID": self.feature_id,
            "source": self.source,
        }

    def to_columns(self) -> dict[str, Any]:
        return {
            "feature_chromosome": self.chromosome,
            "feature_start": self.start,
            "feature_end": self.end,
            "feature_class": self.feature_class,
            "feature_id": self.feature_id,
            "gene_name": self.gene_name,
            "tissues": sorted(self.tissues),
        }


@dataclass(frozen=True)
class FinalRecord:
    """One output row: a gene's coordinates plus one piece of evidence."""

    chromosome: str
    start: int
    end: int
    gene_id: str
    annotation: EvidenceRecord

    @property
    def source(self) -> str:
        return self.annotation.source

    def annotation_json(self) -> str:
        return json.dumps(self.annotation.to_payload(), separators=(",", ":"))

    def to_line(self) -> str:
        return "\t".join(
            (self.chromosome, str(self.start), str(self.end), self.gene_id, self.annotation_json())
        )

    def to_row(self) -> dict[str, Any]:
        """Flatten into one typed storage row.

        Every key of :data:`STORAGE_COLUMNS` is present; scalars the evidence
        channel lacks are ``None`` and lists are empty.
        """

        row: dict[str, Any] = {name: None for name, _ in STORAGE_COLUMNS}
        row.update({name: [] for name, sql_type in STORAGE_COLUMNS if sql_type.endswith("[]")})
        row.update(
            chromosome=self.chromosome,
            start=self.start,
            end=self.end,
            gene_id=self.gene_id,
            source=self.source,
        )
        row.update(self.annotation.to_columns())
        return row


@dataclass(frozen=True)
class RawEqtlRow:
    """Unparsed ``snpgenes`` row plus the tissue named by its source file."""

    tissue: str | None
    fields: tuple[str, ...]
    source_file: str = ""
