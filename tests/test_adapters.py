import gzip
import io
import sys
import tarfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from regionhub.adapters import (  # noqa: E402
    ApprisTableAdapter,
    EnsemblRegulationAdapter,
    GencodeGtfAdapter,
    GtexEqtlAdapter,
)
from regionhub.adapters.common import expand_input_paths  # noqa: E402
from regionhub.adapters.gtex import tissue_from_name  # noqa: E402
from regionhub.adapters.regulation import cell_type_from_path  # noqa: E402


GTF_LINES = [
    "##description: test annotation",
    "chr1\tHAVANA\tgene\t1000\t2000\t.\t+\t.\t"
    'gene_id "ENSG00000001.5"; gene_type "protein_coding"; gene_name "G1";',
    "chr1\tHAVANA\ttranscript\t1000\t2000\t.\t+\t.\t"
    'gene_id "ENSG00000001.5"; transcript_id "ENST00000001.2"; gene_name "G1";',
    "chr1\tHAVANA\texon\t1000\t1100\t.\t+\t.\t"
    'gene_id "ENSG00000001.5"; transcript_id "ENST00000001.2"; exon_number 1; '
    'exon_id "ENSE00000001.1"; gene_name "G1";',
    "chr1\tHAVANA\tstart_codon\t1000\t1002\t.\t+\t0\t"
    'gene_id "ENSG00000001.5"; transcript_id "ENST00000001.2";',
    "chrY\tHAVANA\tgene\t5000\t6000\t.\t-\t.\t"
    'gene_id "ENSG00000002.1_PAR_Y"; gene_name "PARGENE";',
    "chr2\tENSEMBL\tgene\t10\t20\t.\t+\t.\t"
    'gene_id "OTHER1"; gene_name "X";',
]


def _write_gtf(path: Path) -> None:
    with gzip.open(path, "wt") as stream:
        stream.write("\n".join(GTF_LINES) + "\n")


def test_gencode_adapter_reads_gene_models(tmp_path: Path) -> None:
    path = tmp_path / "gencode.v25.annotation.gtf.gz"
    _write_gtf(path)

    adapter = GencodeGtfAdapter(gtf_path=path)
    records = list(adapter.read())

    assert [record.feature_class for record in records] == ["gene", "transcript", "exon", "gene"]
    gene, transcript, exon, par_gene = records
    assert gene.gene_id == "ENSG00000001"
    assert gene.transcript_id is None
    assert transcript.transcript_id == "ENST00000001"
    assert exon.exon_id == "ENSE00000001"
    assert (exon.chromosome, exon.start, exon.end, exon.strand) == ("chr1", 1000, 1100, "+")
    assert par_gene.gene_id == "ENSG00000002"
    assert adapter.skipped_rows == 1


def test_gencode_adapter_reads_gene_coordinates(tmp_path: Path) -> None:
    path = tmp_path / "gencode.gtf.gz"
    _write_gtf(path)

    genes = list(GencodeGtfAdapter(gtf_path=path).genes())

    assert [(gene.chromosome, gene.gene_id, gene.gene_name) for gene in genes] == [
        ("chr1", "ENSG00000001", "G1"),
        ("chrY", "ENSG00000002", "PARGENE"),
        ("chr2", "OTHER1", "X"),
    ]


def test_regulation_adapter_keeps_active_features(tmp_path: Path) -> None:
    regulation_dir = tmp_path / "regulation"
    regulation_dir.mkdir()
    rows = [
        "1\tRegulatory_Build\tPromoter\t1500\t1600\t.\t.\t.\t"
        "ID=ENSR00000001;activity=ACTIVE;bound_end=1700;bound_start=1400",
        "1\tRegulatory_Build\tEnhancer\t3000\t3100\t.\t.\t.\t"
        "ID=ENSR00000002;activity=INACTIVE",
        "1\tRegulatory_Build\tEnhancer\t4000\t4100\t.\t.\t.\t"
        "ID=ENSR00000003;activity=POISED",
        "1\tRegulatory_Build\tCTCF_binding_site\t5000\t5100\t.\t.\t.\tactivity=ACTIVE",
    ]
    with gzip.open(regulation_dir / "RegulatoryFeatures_K562.gff.gz", "wt") as stream:
        stream.write("\n".join(rows) + "\n")
    (regulation_dir / "RegulatoryFeatures_HeLa-S3.gff").write_text(rows[0] + "\n")
    (regulation_dir / "README.txt").write_text("not a feature file\n")

    adapter = EnsemblRegulationAdapter(input_paths=regulation_dir)
    records = list(adapter.read())

    assert sorted(adapter.cell_types) == ["HeLa-S3", "K562"]
    assert sorted((record.cell_type, record.feature_id) for record in records) == [
        ("HeLa-S3", "ENSR00000001"),
        ("K562", "ENSR00000001"),
    ]
    record = records[0]
    assert (record.chromosome, record.start, record.end) == ("1", 1500, 1600)
    assert record.feature_class == "Promoter"
    assert (record.bound_start, record.bound_end) == (1400, 1700)
    assert adapter.skipped_rows == 1


def test_cell_type_and_tissue_names_come_from_file_names() -> None:
    assert cell_type_from_path(Path("/x/RegulatoryFeatures_GM12878.gff.gz")) == "GM12878"
    assert tissue_from_name("GTEx_Analysis_V6_eQTLs/Adipose_Subcutaneous_Analysis.snpgenes") == (
        "Adipose_Subcutaneous"
    )
    assert tissue_from_name("notes.txt") is None


def _snpgenes_line(key: str, gene: str, rsid: str) -> str:
    return "\t".join([key, gene, *(["0.1"] * 20), rsid])


def test_gtex_adapter_reads_directory(tmp_path: Path) -> None:
    gtex_dir = tmp_path / "gtex"
    gtex_dir.mkdir()
    (gtex_dir / "Whole_Blood_Analysis.snpgenes").write_text(
        _snpgenes_line("1_1550_A_G_b37", "ENSG1.1", "rs1") + "\n"
    )
    (gtex_dir / "Whole_Blood_Analysis.v6p.egenes.txt").write_text("ignored\n")

    adapter = GtexEqtlAdapter(input_paths=gtex_dir)
    rows = list(adapter.read())

    assert len(rows) == 1
    assert rows[0].tissue == "Whole_Blood"
    assert rows[0].fields[0] == "1_1550_A_G_b37"
    assert rows[0].fields[22] == "rs1"
    assert adapter.tissues == {"Whole_Blood"}


def test_gtex_adapter_reads_release_archive(tmp_path: Path) -> None:
    archive_path = tmp_path / "GTEx_Analysis_V6_eQTLs.tar.gz"
    members = {
        "GTEx_Analysis_V6_eQTLs/Lung_Analysis.snpgenes": _snpgenes_line(
            "1_1550_A_G_b37", "ENSG1.1", "rs1"
        ),
        "GTEx_Analysis_V6_eQTLs/Liver_Analysis.snpgenes": "\n".join(
            [
                _snpgenes_line("2_150_A_G_b37", "ENSG2.1", "rs2"),
                _snpgenes_line("2_160_A_G_b37", "ENSG2.1", "rs3"),
            ]
        ),
        "GTEx_Analysis_V6_eQTLs/Liver_Analysis.egenes": "ignored",
    }
    with tarfile.open(archive_path, "w:gz") as archive:
        for name, text in members.items():
            data = (text + "\n").encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))

    adapter = GtexEqtlAdapter(input_paths=archive_path)
    rows = list(adapter.read())

    assert sorted((row.tissue, row.fields[22]) for row in rows) == [
        ("Liver", "rs2"),
        ("Liver", "rs3"),
        ("Lung", "rs1"),
    ]
    assert adapter.tissues == {"Liver", "Lung"}


def test_appris_adapter_parses_principal_table(tmp_path: Path) -> None:
    path = tmp_path / "appris_data.principal.txt"
    path.write_text(
        "\n".join(
            [
                "TP53\tENSG00000141510.16\tENST00000269305.8\tCCDS11118\tPRINCIPAL:1",
                "TP53\tENSG00000141510.16\tENST00000413465\t-\tALTERNATIVE:2",
                "garbage line",
                "",
            ]
        )
    )

    adapter = ApprisTableAdapter(table_path=path)
    rows = list(adapter.read())

    assert rows == [
        ("ENSG00000141510", "ENST00000269305", "PRINCIPAL"),
        ("ENSG00000141510", "ENST00000413465", "ALTERNATIVE"),
    ]
    assert adapter.skipped_lines == 1


def test_expand_input_paths_handles_files_dirs_and_globs(tmp_path: Path) -> None:
    (tmp_path / "a.gff").write_text("")
    (tmp_path / "b.gff.gz").write_bytes(b"")
    (tmp_path / "c.txt").write_text("")

    by_dir = expand_input_paths(tmp_path, suffixes=(".gff", ".gff.gz"))
    by_glob = expand_input_paths(str(tmp_path / "*.gff*"))
    explicit = expand_input_paths(tmp_path / "c.txt", suffixes=(".gff",))

    assert [path.name for path in by_dir] == ["a.gff", "b.gff.gz"]
    assert [path.name for path in by_glob] == ["a.gff", "b.gff.gz"]
    assert [path.name for path in explicit] == ["c.txt"]


def test_gtex_adapter_drops_column_name_row(tmp_path: Path) -> None:
    path = tmp_path / "Heart_Left_Ventricle_Analysis.snpgenes"
    header = "\t".join(["snp", "gene", *[f"col{index}" for index in range(20)], "rs_id_dbSNP142_GRCh37p13"])
    path.write_text(
        "\n".join(
            [
                header,
                _snpgenes_line("1_1550_A_G_b37", "ENSG1.1", "rs1"),
                _snpgenes_line("X_900_C_T_b37", "ENSG2.1", "rs2"),
            ]
        )
        + "\n"
    )

    adapter = GtexEqtlAdapter(input_paths=path)
    rows = list(adapter.read())

    assert [row.fields[22] for row in rows] == ["rs1", "rs2"]
    assert adapter.header_rows == 1
