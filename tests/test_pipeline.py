import json
import logging
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from regionhub import (  # noqa: E402
    ConfigError,
    CoordinateConversionFailure,
    CoordinateConverter,
    EmptyInputError,
    LiftoverResult,
    RegionBuildConfig,
    RegionBuildInputs,
    RegionBuildPipeline,
    SourceVersions,
)
from regionhub.models import Interval  # noqa: E402


class FailingRsidConverter(CoordinateConverter):
    """Identity conversion, except for payloads naming ``rs_fail``."""

    def convert(self, intervals: Sequence[Interval]) -> LiftoverResult:
        result = LiftoverResult()
        for interval in intervals:
            if "rsID=rs_fail;" in interval.payload:
                result.failed.append(CoordinateConversionFailure(interval, "Deleted in new"))
            else:
                result.mapped.append(interval)
        return result


def _gtf_line(chromosome: str, feature: str, start: int, end: int, attributes: str) -> str:
    return "\t".join([chromosome, "HAVANA", feature, str(start), str(end), ".", "+", ".", attributes])


def _gff_line(chromosome: str, feature: str, start: int, end: int, feature_id: str) -> str:
    return "\t".join(
        [
            chromosome,
            "Regulatory_Build",
            feature,
            str(start),
            str(end),
            ".",
            ".",
            ".",
            f"ID={feature_id};activity=ACTIVE",
        ]
    )


def _snpgenes_line(key: str, gene: str, rsid: str) -> str:
    return "\t".join([key, gene, *(["0.5"] * 20), rsid])


def _write_inputs(
    root: Path,
    *,
    gtex_rows: list[str] | None = None,
    malformed: bool = False,
) -> RegionBuildInputs:
    gtf = root / "gencode.annotation.gtf"
    extra_gtf = [_gtf_line("chr3", "gene", 10, 20, 'gene_name "NOID";')] if malformed else []
    gtf.write_text(
        "\n".join(
            [
                "##provider: GENCODE",
                *extra_gtf,
                _gtf_line("chr1", "gene", 1000, 2000, 'gene_id "ENSG1.3"; gene_name "G1";'),
                _gtf_line(
                    "chr1",
                    "transcript",
                    1000,
                    2000,
                    'gene_id "ENSG1.3"; transcript_id "ENST1.1"; gene_name "G1";',
                ),
                _gtf_line(
                    "chr1",
                    "exon",
                    1000,
                    1200,
                    'gene_id "ENSG1.3"; transcript_id "ENST1.1"; exon_id "ENSE1.1";',
                ),
                _gtf_line("chr2", "gene", 100, 5000, 'gene_id "ENSG2.7"; gene_name "G2";'),
            ]
        )
        + "\n"
    )

    regulation = root / "regulation"
    regulation.mkdir()
    (regulation / "RegulatoryFeatures_K562.gff").write_text(
        "\n".join(
            [
                _gff_line("1", "Promoter", 1500, 1600, "ENSR1"),
                _gff_line("2", "Enhancer", 300, 400, "ENSR2"),
                *(
                    [
                        _gff_line("1", "Enhancer", 50, 60, "unnamed_region"),
                        _gff_line("KI270728.1", "Enhancer", 10, 20, "ENSR9"),
                    ]
                    if malformed
                    else []
                ),
            ]
        )
        + "\n"
    )
    (regulation / "RegulatoryFeatures_HeLa.gff").write_text(
        _gff_line("1", "Promoter", 1500, 1600, "ENSR1") + "\n"
    )

    gtex = root / "gtex"
    gtex.mkdir()
    if gtex_rows is None:
        gtex_rows = [
            _snpgenes_line("1_1550_A_G_b37", "ENSG1.3", "rs1"),
            _snpgenes_line("2_350_C_T_b37", "ENSG3.1", "rs2"),
            _snpgenes_line("1_1560_C_T_b37", "ENSG1.3", "rs_fail"),
        ]
    (gtex / "Lung_Analysis.snpgenes").write_text("\n".join(gtex_rows) + "\n")

    appris = root / "appris_data.principal.txt"
    appris_lines = "G1\tENSG1.3\tENST1.1\tCCDS1\tPRINCIPAL:1\n"
    if malformed:
        appris_lines += "G1\tno identifiers on this line\n"
    appris.write_text(appris_lines)

    return RegionBuildInputs(
        gencode_gtf=gtf,
        regulation=(regulation,),
        gtex=(gtex,),
        appris=appris,
    )


def _config(tmp_path: Path, *, parallel: bool = False, **kwargs) -> RegionBuildConfig:
    return RegionBuildConfig(
        inputs=_write_inputs(tmp_path, **kwargs),
        output_dir=tmp_path / "out",
        versions=SourceVersions(gencode="25", ensembl="86", gtex="V6", created="2024.01.02"),
        compress=False,
        parallel=parallel,
    )


@pytest.mark.parametrize("parallel", [False, True])
def test_pipeline_builds_linked_features(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
    parallel: bool,
) -> None:
    config = _config(tmp_path, parallel=parallel)

    with caplog.at_level(logging.INFO):
        report = RegionBuildPipeline(config, converter=FailingRsidConverter()).run()

    assert report.genes == 2
    assert report.cell_types == 2
    assert report.appris_annotated == 4
    assert report.regulatory_features == 2
    assert report.eqtl_rows == 3
    assert report.mapped_variants == 2
    assert report.failed_variants == 1
    assert report.gtex_linked == 2
    assert report.overlap_linked == 2
    assert report.total_lines == 7
    assert report.lost_associations == 1
    assert report.lost_genes == 1
    assert report.lost_sources == ["GTEx"]
    assert "Number of lost associations: 1" in caplog.text

    lines = config.output_path.read_text().splitlines()
    assert lines[-8] == "# CHR\tSTART\tEND\tGENEID\tANNOTATION"
    body = [line.split("\t") for line in lines if not line.startswith("#")]
    assert [row[0] for row in body] == ["chr1"] * 5 + ["chr2"] * 2
    annotations = [json.loads(row[4]) for row in body]
    assert [item["source"] for item in annotations] == [
        "GENCODE",
        "GENCODE",
        "GENCODE",
        "GTEx",
        "overlap",
        "GENCODE",
        "overlap",
    ]
    assert annotations[1]["appris"] == "PRINCIPAL"
    assert annotations[3]["GTEx_rsIDs"] == ["rs1"]
    assert annotations[4]["Tissues"] == ["HeLa", "K562"]

    failed = config.failure_report_path.read_text().splitlines()
    assert [line.split("\t")[:2] for line in failed] == [["ENSG3", "GTEx"]]
    assert "rsID=rs_fail" in config.failed_liftover_path.read_text()


def test_pipeline_reports_skipped_input_rows(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    header = "\t".join(["variant_id", "gene_id", *(["slope"] * 20), "rs_id_dbSNP142_GRCh37p13"])
    config = _config(
        tmp_path,
        malformed=True,
        gtex_rows=[
            header,
            _snpgenes_line("1_1550_A_G_b37", "ENSG1.3", "rs1"),
            _snpgenes_line("2_350_C_T_b37", "ENSG3.1", "rs2"),
        ],
    )

    with caplog.at_level(logging.WARNING):
        report = RegionBuildPipeline(config, converter=FailingRsidConverter()).run()

    assert report.genes == 2
    assert report.skipped_gene_rows == 1
    assert report.skipped_gene_model_rows == 1
    assert report.skipped_regulation_rows == 1
    assert report.skipped_appris_lines == 1
    assert report.skipped_regulatory_records == 1
    assert report.regulatory_features == 2
    assert report.gtex_header_rows == 1
    assert report.eqtl_rows == 2
    assert report.malformed_eqtl_rows == 0
    assert "Skipped malformed input rows: 1 gene, 1 gene model, 1 APPRIS, 1 regulation." in (
        caplog.text
    )


def test_pipeline_reports_no_skips_for_clean_inputs(tmp_path: Path) -> None:
    report = RegionBuildPipeline(_config(tmp_path), converter=FailingRsidConverter()).run()

    assert report.skipped_gene_rows == 0
    assert report.skipped_gene_model_rows == 0
    assert report.skipped_regulation_rows == 0
    assert report.skipped_appris_lines == 0
    assert report.skipped_regulatory_records == 0
    assert report.gtex_header_rows == 0
    assert report.untissued_eqtl_rows == 0


def test_pipeline_requires_chain_file_without_converter(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        RegionBuildPipeline(_config(tmp_path)).run()


def test_pipeline_reports_missing_inputs(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config.inputs.appris.unlink()

    with pytest.raises(ConfigError) as excinfo:
        RegionBuildPipeline(config, converter=FailingRsidConverter()).run()

    assert "appris_data.principal.txt" in str(excinfo.value)


def test_pipeline_stops_on_empty_stage_without_writing_output(tmp_path: Path) -> None:
    config = _config(tmp_path, gtex_rows=[_snpgenes_line("9_10_A_G_b37", "ENSG1.3", "rs9")])

    with pytest.raises(EmptyInputError) as excinfo:
        RegionBuildPipeline(config, converter=FailingRsidConverter()).run()

    assert excinfo.value.stage == "expression_link"
    assert not config.output_path.exists()


def test_build_regions_script_reports_config_errors(tmp_path: Path) -> None:
    inputs = _write_inputs(tmp_path)
    config_path = tmp_path / "build.json"
    config_path.write_text(
        json.dumps(
            {
                "inputs": {
                    "gencode_gtf": str(inputs.gencode_gtf),
                    "regulation": [str(path) for path in inputs.regulation],
                    "gtex": [str(path) for path in inputs.gtex],
                    "appris": str(inputs.appris),
                },
                "output_dir": str(tmp_path / "out"),
                "compress": False,
            }
        )
    )

    completed = subprocess.run(
        [sys.executable, str(ROOT / "scripts" / "build_regions.py"), "--config", str(config_path)],
        capture_output=True,
        text=True,
        check=False,
    )

    assert completed.returncode == 1
    assert "chain_file" in completed.stderr
    assert not (tmp_path / "out" / "Linked_features.bed").exists()


def test_build_regions_script_reports_liftover_failure(tmp_path: Path) -> None:
    inputs = _write_inputs(tmp_path)
    chain = tmp_path / "hg19ToHg38.over.chain.gz"
    chain.write_bytes(b"")
    liftover = tmp_path / "liftOver"
    liftover.write_text("#!/bin/sh\necho 'chain file is corrupt' >&2\nexit 255\n")
    liftover.chmod(0o755)
    config_path = tmp_path / "build.json"
    config_path.write_text(
        json.dumps(
            {
                "inputs": {
                    "gencode_gtf": str(inputs.gencode_gtf),
                    "regulation": [str(path) for path in inputs.regulation],
                    "gtex": [str(path) for path in inputs.gtex],
                    "appris": str(inputs.appris),
                    "chain_file": str(chain),
                },
                "output_dir": str(tmp_path / "out"),
                "liftover_executable": str(liftover),
                "compress": False,
            }
        )
    )

    completed = subprocess.run(
        [sys.executable, str(ROOT / "scripts" / "build_regions.py"), "--config", str(config_path)],
        capture_output=True,
        text=True,
        check=False,
    )

    assert completed.returncode == 1
    assert "chain file is corrupt" in completed.stderr
    assert "Traceback" not in completed.stderr
