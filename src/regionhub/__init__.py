"""Core regionhub pipeline primitives.

This package builds gene-centric region files for burden testing: GENCODE
gene models annotated with APPRIS, Ensembl regulatory features linked to
genes through GTEx eQTLs or physical overlap, merged onto gene coordinates.
"""

from .config import (
    OUTPUT_COLUMNS,
    RegionBuildConfig,
    RegionBuildConfigLoader,
    RegionBuildInputs,
    SourceVersions,
)
from .errors import (
    ConfigError,
    CoordinateConversionFailure,
    EmptyInputError,
    LiftoverError,
    MalformedRecordError,
    RegionHubError,
    UnresolvedGeneReference,
)
from .liftover import CoordinateConverter, LiftoverResult, UcscLiftOver
from .models import (
    ExonEvidence,
    ExpressionEvidence,
    FinalRecord,
    GeneRecord,
    Interval,
    OverlapEvidence,
    RegulatoryFeature,
)
from .pipeline import RegionBuildPipeline, RegionBuildReport

__all__ = [
    "OUTPUT_COLUMNS",
    "RegionBuildConfig",
    "RegionBuildConfigLoader",
    "RegionBuildInputs",
    "SourceVersions",
    "ConfigError",
    "CoordinateConversionFailure",
    "EmptyInputError",
    "LiftoverError",
    "MalformedRecordError",
    "RegionHubError",
    "UnresolvedGeneReference",
    "CoordinateConverter",
    "LiftoverResult",
    "UcscLiftOver",
    "ExonEvidence",
    "ExpressionEvidence",
    "FinalRecord",
    "GeneRecord",
    "Interval",
    "OverlapEvidence",
    "RegulatoryFeature",
    "RegionBuildPipeline",
    "RegionBuildReport",
]
