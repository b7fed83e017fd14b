"""Collapse per-cell-type regulatory activity into one feature per Ensembl ID."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from regionhub.chromosomes import is_canonical, with_chr_prefix
from regionhub.errors import EmptyInputError
from regionhub.intervals import sort_records
from regionhub.models import RegulatoryActivityRecord, RegulatoryFeature


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationResult:
    """Aggregated features, sorted by (chromosome, start), plus input accounting."""

    features: tuple[RegulatoryFeature, ...]
    input_records: int
    skipped_records: int


class RegulatoryFeatureAggregator:
    """Group activity records by feature ID and union their cell types.

    Coordinates and class come from the first record seen for an ID; later
    records for the same ID only contribute their cell type.
    """

    stage = "regulatory_aggregation"

    def aggregate(self, records: Iterable[RegulatoryActivityRecord]) -> AggregationResult:
        representatives: dict[str, RegulatoryActivityRecord] = {}
        tissues: dict[str, set[str]] = {}
        seen = 0
        skipped = 0

        for record in records:
            seen += 1
            if not is_canonical(record.chromosome):
                skipped += 1
                logger.debug(
                    "Skipping %s on non-canonical contig %s", record.feature_id, record.chromosome
                )
                continue

            representatives.setdefault(record.feature_id, record)
            tissues.setdefault(record.feature_id, set()).add(record.cell_type)

        if not representatives:
            raise EmptyInputError(
                self.stage,
                f"No regulatory activity records on canonical chromosomes ({seen} read).",
            )

        features = sort_records(
            [
                RegulatoryFeature(
                    chromosome=with_chr_prefix(first.chromosome),
                    start=first.start,
                    end=first.end,
                    feature_id=feature_id,
                    feature_class=first.feature_class,
                    tissues=frozenset(tissues[feature_id]),
                )
                for feature_id, first in representatives.items()
            ]
        )

        logger.info(
            "Aggregated %d activity records into %d regulatory features (%d skipped).",
            seen,
            len(features),
            skipped,
        )
        return AggregationResult(
            features=tuple(features),
            input_records=seen,
            skipped_records=skipped,
        )
