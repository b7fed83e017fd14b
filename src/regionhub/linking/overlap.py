"""Link regulatory features to the genes they physically overlap."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from regionhub.errors import EmptyInputError
from regionhub.intervals import intersect
from regionhub.models import GeneRecord, OverlapEvidence, RegulatoryFeature


logger = logging.getLogger(__name__)


class OverlapLinker:
    """Emit one evidence record per overlapping (gene, feature) pair.

    Pairs are taken as reported by :func:`regionhub.intervals.intersect`; no
    further deduplication is applied.
    """

    stage = "overlap_link"

    def link(
        self,
        genes: Sequence[GeneRecord],
        features: Sequence[RegulatoryFeature],
    ) -> tuple[OverlapEvidence, ...]:
        evidence = tuple(
            OverlapEvidence(
                gene_id=gene.gene_id,
                gene_name=gene.gene_name,
                chromosome=feature.chromosome,
                start=feature.start,
                end=feature.end,
                feature_class=feature.feature_class,
                feature_id=feature.feature_id,
                tissues=feature.tissues,
            )
            for gene, feature in intersect(genes, features)
        )

        if not evidence:
            raise EmptyInputError(self.stage, "No regulatory feature overlaps any gene.")

        logger.info("Number of regulatory features linked by overlap: %d", len(evidence))
        return evidence
