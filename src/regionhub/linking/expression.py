"""Link regulatory features to genes through GTEx eQTL variants."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from regionhub.adapters.common import strip_version
from regionhub.chromosomes import with_chr_prefix
from regionhub.errors import CoordinateConversionFailure, EmptyInputError, MalformedRecordError
from regionhub.intervals import intersect, sort_records
from regionhub.liftover import CoordinateConverter
from regionhub.models import (
    EqtlRecord,
    ExpressionEvidence,
    ExpressionLink,
    Interval,
    RawEqtlRow,
    RegulatoryFeature,
    parse_variant_payload,
)


logger = logging.getLogger(__name__)

DEFAULT_RSID_COLUMN = 22


def parse_eqtl_row(row: RawEqtlRow, rsid_column: int = DEFAULT_RSID_COLUMN) -> EqtlRecord:
    """Parse one ``snpgenes`` row.

    Column 0 holds ``chrom_pos_ref_alt_build``, column 1 the versioned gene id
    and ``rsid_column`` the dbSNP identifier.
    """

    fields = row.fields
    if len(fields) <= max(1, rsid_column):
        raise MalformedRecordError(
            f"Expected more than {rsid_column} columns, got {len(fields)} in {row.source_file}"
        )

    parts = fields[0].split("_")
    if len(parts) != 5:
        raise MalformedRecordError(f"Variant key is not chrom_pos_ref_alt_build: {fields[0]!r}")
    chromosome, position_text, ref, alt, build = parts
    try:
        position = int(position_text)
    except ValueError as exc:
        raise MalformedRecordError(f"Non-integer variant position: {fields[0]!r}") from exc
    if not chromosome or position < 1:
        raise MalformedRecordError(f"Invalid variant coordinate: {fields[0]!r}")

    gene_id = strip_version(fields[1].strip())
    if not gene_id.startswith("ENS"):
        raise MalformedRecordError(f"Not an Ensembl gene id: {fields[1]!r}")

    rsid = fields[rsid_column].strip()
    if not rsid or rsid in {".", "NA"}:
        raise MalformedRecordError(f"Missing rsID for variant {fields[0]!r}")

    return EqtlRecord(
        rsid=rsid,
        chromosome=with_chr_prefix(chromosome),
        position=position,
        ref=ref,
        alt=alt,
        build=build,
        gene_id=gene_id,
        tissue=row.tissue,
    )


@dataclass
class CollectedLinks:
    links: list[ExpressionLink] = field(default_factory=list)
    parsed_rows: int = 0
    malformed_rows: int = 0
    untissued_rows: int = 0


@dataclass
class ExpressionMappingResult:
    """Evidence plus the counts reported for the expression-link stage."""

    evidence: tuple[ExpressionEvidence, ...] = ()
    parsed_rows: int = 0
    malformed_rows: int = 0
    untissued_rows: int = 0
    variants: int = 0
    mapped_intervals: int = 0
    conversion_failures: list[CoordinateConversionFailure] = field(default_factory=list)


class ExpressionLinkMapper:
    """Normalize eQTL variants to the canonical assembly and aggregate by feature."""

    stage = "expression_link"

    def __init__(
        self,
        *,
        converter: CoordinateConverter,
        rsid_column: int = DEFAULT_RSID_COLUMN,
    ) -> None:
        self.converter = converter
        self.rsid_column = rsid_column

    def collect_links(self, rows: Iterable[RawEqtlRow]) -> CollectedLinks:
        """Group parsed rows by rsID.

        Rows whose source file names no tissue are parsed but contribute no link.
        """

        coordinates: dict[str, tuple[str, int]] = {}
        genes: dict[str, dict[str, set[str]]] = {}
        parsed = 0
        malformed = 0
        untissued = 0

        for row in rows:
            try:
                record = parse_eqtl_row(row, self.rsid_column)
            except MalformedRecordError as exc:
                malformed += 1
                logger.debug("Skipping eQTL row: %s", exc)
                continue

            parsed += 1
            if not record.tissue:
                untissued += 1
                logger.debug("No tissue for %s in %s", record.rsid, row.source_file)
                continue

            coordinates.setdefault(record.rsid, (record.chromosome, record.position))
            genes.setdefault(record.rsid, {}).setdefault(record.gene_id, set()).add(record.tissue)

        links = [
            ExpressionLink(
                rsid=rsid,
                chromosome=chromosome,
                position=position,
                genes={gene_id: frozenset(tissues) for gene_id, tissues in genes[rsid].items()},
            )
            for rsid, (chromosome, position) in coordinates.items()
        ]
        return CollectedLinks(
            links=links,
            parsed_rows=parsed,
            malformed_rows=malformed,
            untissued_rows=untissued,
        )

    def link(
        self,
        variants: Sequence[Interval],
        features: Sequence[RegulatoryFeature],
    ) -> list[ExpressionEvidence]:
        """Aggregate converted variant intervals overlapping each feature per gene."""

        features_by_id: dict[str, RegulatoryFeature] = {}
        rsids: dict[tuple[str, str], set[str]] = {}
        eqtl_tissues: dict[tuple[str, str], set[str]] = {}

        for variant, feature in intersect(variants, features, assume_sorted=True):
            try:
                gene_id, rsid, tissues = parse_variant_payload(variant.payload)
            except MalformedRecordError as exc:
                logger.debug("Skipping lifted variant: %s", exc)
                continue

            key = (gene_id, feature.feature_id)
            features_by_id.setdefault(feature.feature_id, feature)
            rsids.setdefault(key, set()).add(rsid)
            eqtl_tissues.setdefault(key, set()).update(tissues)

        return [
            ExpressionEvidence(
                gene_id=gene_id,
                feature_class=features_by_id[feature_id].feature_class,
                chromosome=features_by_id[feature_id].chromosome,
                start=features_by_id[feature_id].start,
                end=features_by_id[feature_id].end,
                feature_id=feature_id,
                tissues=features_by_id[feature_id].tissues,
                linked_rsids=frozenset(rsids[(gene_id, feature_id)]),
                linked_tissues=frozenset(eqtl_tissues[(gene_id, feature_id)]),
            )
            for gene_id, feature_id in rsids
        ]

    def map(
        self,
        rows: Iterable[RawEqtlRow],
        features: Sequence[RegulatoryFeature],
    ) -> ExpressionMappingResult:
        collected = self.collect_links(rows)
        if collected.parsed_rows == 0:
            raise EmptyInputError(
                self.stage,
                f"No eQTL records could be parsed ({collected.malformed_rows} malformed rows).",
            )
        logger.info(
            "Parsed %d eQTL rows into %d variants (%d malformed, %d without tissue skipped).",
            collected.parsed_rows,
            len(collected.links),
            collected.malformed_rows,
            collected.untissued_rows,
        )

        intervals = sort_records(
            [interval for link in collected.links for interval in link.to_intervals()]
        )
        conversion = self.converter.convert(intervals)
        for failure in conversion.failed:
            logger.debug(
                "Liftover failed for %s:%d-%d (%s): %s",
                failure.interval.chromosome,
                failure.interval.start,
                failure.interval.end,
                failure.interval.payload,
                failure.reason or "unmapped",
            )
        logger.info(
            "Successfully mapped GTEx variants: %d, failed variants: %d.",
            len(conversion.mapped),
            len(conversion.failed),
        )

        evidence = self.link(sort_records(conversion.mapped), features)
        if not evidence:
            raise EmptyInputError(
                self.stage, "No lifted eQTL variant overlaps any regulatory feature."
            )
        logger.info("Number of GTEx linked regulatory features: %d", len(evidence))

        return ExpressionMappingResult(
            evidence=tuple(evidence),
            parsed_rows=collected.parsed_rows,
            malformed_rows=collected.malformed_rows,
            untissued_rows=collected.untissued_rows,
            variants=len(collected.links),
            mapped_intervals=len(conversion.mapped),
            conversion_failures=list(conversion.failed),
        )
