"""Region-linking stages: aggregation, evidence linking and the final merge."""

from .aggregation import AggregationResult, RegulatoryFeatureAggregator
from .expression import ExpressionLinkMapper, ExpressionMappingResult, parse_eqtl_row
from .isoforms import IsoformAnnotationJoiner, IsoformImportanceTable
from .merge import GeneIndex, MergeEngine, MergeResult, build_header
from .overlap import OverlapLinker

__all__ = [
    "AggregationResult",
    "RegulatoryFeatureAggregator",
    "ExpressionLinkMapper",
    "ExpressionMappingResult",
    "parse_eqtl_row",
    "IsoformAnnotationJoiner",
    "IsoformImportanceTable",
    "GeneIndex",
    "MergeEngine",
    "MergeResult",
    "build_header",
    "OverlapLinker",
]
