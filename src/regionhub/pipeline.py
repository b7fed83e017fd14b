"""Composable region-build pipeline orchestrator."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from regionhub.adapters import (
    ApprisTableAdapter,
    EnsemblRegulationAdapter,
    GencodeGtfAdapter,
    GtexEqtlAdapter,
)
from regionhub.config import RegionBuildConfig
from regionhub.errors import ConfigError
from regionhub.liftover import CoordinateConverter, UcscLiftOver
from regionhub.linking import (
    AggregationResult,
    ExpressionLinkMapper,
    ExpressionMappingResult,
    GeneIndex,
    IsoformAnnotationJoiner,
    IsoformImportanceTable,
    MergeEngine,
    MergeResult,
    OverlapLinker,
    RegulatoryFeatureAggregator,
)
from regionhub.models import ExonEvidence, OverlapEvidence, RegulatoryFeature
from regionhub.publishers import FailureReportPublisher, Publisher, RegionsBedPublisher
from regionhub.storage import DuckDBParquetStorage, RegionStorage


logger = logging.getLogger(__name__)


@dataclass
class RegionBuildReport:
    """Execution summary for a region build."""

    genes: int
    duplicate_genes: int
    cell_types: int
    appris_annotated: int
    regulatory_features: int
    eqtl_rows: int
    malformed_eqtl_rows: int
    variants: int
    mapped_variants: int
    failed_variants: int
    gtex_linked: int
    overlap_linked: int
    total_lines: int
    lost_associations: int
    lost_genes: int
    skipped_gene_rows: int = 0
    skipped_gene_model_rows: int = 0
    skipped_appris_lines: int = 0
    skipped_regulation_rows: int = 0
    skipped_regulatory_records: int = 0
    gtex_header_rows: int = 0
    untissued_eqtl_rows: int = 0
    lost_sources: list[str] = field(default_factory=list)


class RegionBuildPipeline:
    """Run the five linking stages, then storage and publication in order.

    Stages 3 (expression link) and 4 (overlap link) only read the aggregated
    features and the gene list; with ``config.parallel`` they run on two
    worker threads.
    """

    def __init__(
        self,
        config: RegionBuildConfig,
        *,
        converter: CoordinateConverter | None = None,
        publishers: list[Publisher] | None = None,
        storage: RegionStorage | None = None,
    ) -> None:
        self.config = config
        self.converter = converter
        self.publishers = publishers if publishers is not None else self._default_publishers()
        self.storage = storage if storage is not None else self._default_storage()

    def _default_publishers(self) -> list[Publisher]:
        return [
            RegionsBedPublisher(
                output_path=self.config.output_path,
                compress=self.config.compress,
            ),
            FailureReportPublisher(
                report_path=self.config.failure_report_path,
                failed_liftover_path=self.config.failed_liftover_path,
            ),
        ]

    def _default_storage(self) -> RegionStorage | None:
        if not self.config.storage:
            return None
        return DuckDBParquetStorage(**self.config.storage)

    def _converter(self) -> CoordinateConverter:
        if self.converter is not None:
            return self.converter
        chain_file = self.config.inputs.chain_file
        if chain_file is None:
            raise ConfigError("inputs.chain_file is required to lift GTEx variants over.")
        return UcscLiftOver(chain_file=chain_file, executable=self.config.liftover_executable)

    def _check_inputs(self) -> None:
        missing = self.config.inputs.missing()
        if missing:
            raise ConfigError(
                "Missing input files: " + ", ".join(str(path) for path in missing)
            )

    def run(self) -> RegionBuildReport:
        self._check_inputs()
        inputs = self.config.inputs

        gencode = GencodeGtfAdapter(gtf_path=inputs.gencode_gtf)
        regulation = EnsemblRegulationAdapter(input_paths=inputs.regulation)
        gtex = GtexEqtlAdapter(input_paths=inputs.gtex)
        appris = ApprisTableAdapter(table_path=inputs.appris)

        if not regulation.input_paths:
            raise ConfigError("No regulatory feature files matched inputs.regulation.")
        if not gtex.input_paths:
            raise ConfigError("No GTEx snpgenes files or archives matched inputs.gtex.")

        converter = self._converter()

        index = GeneIndex.build(gencode.genes())
        logger.info("Number of genes in GENCODE: %d", len(index))

        table = IsoformImportanceTable.from_rows(appris.read())
        logger.info("Number of APPRIS isoform annotations: %d", len(table))
        exon_evidence = IsoformAnnotationJoiner(table).join(gencode.read())

        logger.info("Reading regulatory features for %d cell types.", len(regulation.cell_types))
        aggregation = RegulatoryFeatureAggregator().aggregate(regulation.read())
        features = aggregation.features

        mapper = ExpressionLinkMapper(converter=converter, rsid_column=inputs.gtex_rsid_column)
        linker = OverlapLinker()

        if self.config.parallel:
            with ThreadPoolExecutor(max_workers=2) as executor:
                expression_future = executor.submit(self._map_expression, mapper, gtex, features)
                overlap_future = executor.submit(linker.link, index.genes, features)
                expression = expression_future.result()
                overlap = overlap_future.result()
        else:
            expression = self._map_expression(mapper, gtex, features)
            overlap = linker.link(index.genes, features)

        result = MergeEngine(self.config.versions).merge(
            index,
            exon_evidence,
            expression.evidence,
            overlap,
        )

        if self.storage is not None:
            self.storage.persist(result.records)

        for publisher in self.publishers:
            publisher.publish(result, conversion_failures=expression.conversion_failures)

        report = self._report(
            index,
            exon_evidence,
            expression,
            overlap,
            result,
            gencode=gencode,
            appris=appris,
            regulation=regulation,
            gtex=gtex,
            aggregation=aggregation,
        )
        skipped_inputs = (
            report.skipped_gene_rows
            + report.skipped_gene_model_rows
            + report.skipped_appris_lines
            + report.skipped_regulation_rows
        )
        if skipped_inputs:
            logger.warning(
                "Skipped malformed input rows: %d gene, %d gene model, %d APPRIS, %d regulation.",
                report.skipped_gene_rows,
                report.skipped_gene_model_rows,
                report.skipped_appris_lines,
                report.skipped_regulation_rows,
            )
        return report

    @staticmethod
    def _map_expression(
        mapper: ExpressionLinkMapper,
        gtex: GtexEqtlAdapter,
        features: tuple[RegulatoryFeature, ...],
    ) -> ExpressionMappingResult:
        return mapper.map(gtex.read(), features)

    @staticmethod
    def _report(
        index: GeneIndex,
        exon_evidence: tuple[ExonEvidence, ...],
        expression: ExpressionMappingResult,
        overlap: tuple[OverlapEvidence, ...],
        result: MergeResult,
        *,
        gencode: GencodeGtfAdapter,
        appris: ApprisTableAdapter,
        regulation: EnsemblRegulationAdapter,
        gtex: GtexEqtlAdapter,
        aggregation: AggregationResult,
    ) -> RegionBuildReport:
        return RegionBuildReport(
            genes=len(index),
            duplicate_genes=index.duplicates,
            cell_types=len(regulation.cell_types),
            appris_annotated=len(exon_evidence),
            regulatory_features=len(aggregation.features),
            eqtl_rows=expression.parsed_rows,
            malformed_eqtl_rows=expression.malformed_rows,
            variants=expression.variants,
            mapped_variants=expression.mapped_intervals,
            failed_variants=len(expression.conversion_failures),
            gtex_linked=len(expression.evidence),
            overlap_linked=len(overlap),
            total_lines=len(result.records),
            lost_associations=len(result.failures),
            lost_genes=len(result.lost_genes),
            skipped_gene_rows=gencode.skipped_gene_rows,
            skipped_gene_model_rows=gencode.skipped_rows,
            skipped_appris_lines=appris.skipped_lines,
            skipped_regulation_rows=regulation.skipped_rows,
            skipped_regulatory_records=aggregation.skipped_records,
            gtex_header_rows=gtex.header_rows,
            untissued_eqtl_rows=expression.untissued_rows,
            lost_sources=result.lost_sources,
        )
