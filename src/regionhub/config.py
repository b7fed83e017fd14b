"""Configuration contracts for region builds."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from jsonschema import FormatChecker
from jsonschema.validators import validator_for

from regionhub.errors import ConfigError


CANONICAL_CHROMOSOME_PATTERN = r"^(?:chr)?(?:[1-9]|1[0-9]|2[0-2]|X|Y|M|MT)$"

EXCLUDED_GENE_MODEL_FEATURES: frozenset[str] = frozenset(
    {"Selenocysteine", "start_codon", "stop_codon"}
)

OUTPUT_COLUMNS: tuple[str, ...] = ("CHR", "START", "END", "GENEID", "ANNOTATION")


@dataclass(frozen=True)
class SourceVersions:
    """Release labels written into the output header."""

    gencode: str = "NA"
    ensembl: str = "NA"
    gtex: str = "NA"
    created: str = field(default_factory=lambda: date.today().strftime("%Y.%m.%d"))


@dataclass(frozen=True)
class RegionBuildInputs:
    """Locations of the raw source files consumed by a build."""

    gencode_gtf: Path
    regulation: tuple[Path, ...]
    gtex: tuple[Path, ...]
    appris: Path
    chain_file: Path | None = None
    gtex_rsid_column: int = 22

    def missing(self) -> list[Path]:
        """Return declared inputs that do not exist on disk."""

        candidates = [self.gencode_gtf, self.appris, *self.regulation, *self.gtex]
        if self.chain_file is not None:
            candidates.append(self.chain_file)
        return [
            path
            for path in candidates
            if not _is_glob(path) and not path.exists()
        ]


@dataclass(frozen=True)
class RegionBuildConfig:
    """Everything a pipeline run needs, passed explicitly to each stage."""

    inputs: RegionBuildInputs
    output_dir: Path
    versions: SourceVersions = field(default_factory=SourceVersions)
    output_name: str = "Linked_features.bed"
    compress: bool = True
    parallel: bool = False
    liftover_executable: str = "liftOver"
    storage: dict[str, Any] | None = None

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.output_name

    @property
    def failure_report_path(self) -> Path:
        return self.output_dir / "failed"

    @property
    def failed_liftover_path(self) -> Path:
        return self.output_dir / "GTEx_failed_to_map.bed"


def _is_glob(path: Path) -> bool:
    return any(char in str(path) for char in "*?[")


BUILD_CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["inputs", "output_dir"],
    "properties": {
        "output_dir": {"type": "string", "minLength": 1},
        "output_name": {"type": "string", "minLength": 1},
        "compress": {"type": "boolean"},
        "parallel": {"type": "boolean"},
        "liftover_executable": {"type": "string", "minLength": 1},
        "versions": {
            "type": "object",
            "properties": {
                "gencode": {"type": ["string", "integer"]},
                "ensembl": {"type": ["string", "integer"]},
                "gtex": {"type": "string"},
                "created": {"type": "string"},
            },
            "additionalProperties": False,
        },
        "inputs": {
            "type": "object",
            "required": ["gencode_gtf", "regulation", "gtex", "appris"],
            "properties": {
                "gencode_gtf": {"type": "string"},
                "regulation": {
                    "type": ["string", "array"],
                    "items": {"type": "string"},
                },
                "gtex": {
                    "type": ["string", "array"],
                    "items": {"type": "string"},
                },
                "appris": {"type": "string"},
                "chain_file": {"type": "string"},
                "gtex_rsid_column": {"type": "integer", "minimum": 0},
            },
            "additionalProperties": False,
        },
        "storage": {
            "type": "object",
            "required": ["db_path", "parquet_path"],
            "properties": {
                "db_path": {"type": "string"},
                "parquet_path": {"type": "string"},
                "table_name": {"type": "string"},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}


class RegionBuildConfigLoader:
    """Load and validate a JSON build configuration.

    Relative paths are resolved against the directory holding the config file.
    ``~`` and ``$VARS`` are expanded before resolution.
    """

    def __init__(self, schema: dict[str, Any] | None = None) -> None:
        schema = schema or BUILD_CONFIG_SCHEMA
        validator_cls = validator_for(schema)
        validator_cls.check_schema(schema)
        self._validator = validator_cls(schema, format_checker=FormatChecker())

    def load(self, path: str | Path) -> RegionBuildConfig:
        config_path = Path(path)
        try:
            payload = json.loads(config_path.read_text())
        except FileNotFoundError as exc:
            raise ConfigError(f"Config file not found: {config_path}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Config file is not valid JSON: {config_path}: {exc}") from exc

        return self.parse(payload, base_dir=config_path.resolve().parent)

    def parse(self, payload: dict[str, Any], *, base_dir: str | Path = ".") -> RegionBuildConfig:
        errors = sorted(
            self._validator.iter_errors(payload),
            key=lambda err: [str(part) for part in err.path],
        )
        if errors:
            details = "; ".join(
                f"/{'/'.join(str(part) for part in err.path)}: {err.message}" for err in errors
            )
            raise ConfigError(f"Invalid build config: {details}")

        base = Path(base_dir)
        raw_inputs = payload["inputs"]
        chain_file = raw_inputs.get("chain_file")
        inputs = RegionBuildInputs(
            gencode_gtf=self._resolve(raw_inputs["gencode_gtf"], base),
            regulation=self._resolve_many(raw_inputs["regulation"], base),
            gtex=self._resolve_many(raw_inputs["gtex"], base),
            appris=self._resolve(raw_inputs["appris"], base),
            chain_file=self._resolve(chain_file, base) if chain_file else None,
            gtex_rsid_column=int(raw_inputs.get("gtex_rsid_column", 22)),
        )

        raw_versions = {key: str(value) for key, value in payload.get("versions", {}).items()}
        versions = SourceVersions(**raw_versions)

        storage = payload.get("storage")
        if storage is not None:
            storage = dict(storage)
            for key in ("db_path", "parquet_path"):
                storage[key] = self._resolve(storage[key], base)

        return RegionBuildConfig(
            inputs=inputs,
            output_dir=self._resolve(payload["output_dir"], base),
            versions=versions,
            output_name=payload.get("output_name", "Linked_features.bed"),
            compress=bool(payload.get("compress", True)),
            parallel=bool(payload.get("parallel", False)),
            liftover_executable=payload.get("liftover_executable", "liftOver"),
            storage=storage,
        )

    @staticmethod
    def _resolve(value: str, base: Path) -> Path:
        expanded = Path(os.path.expandvars(os.path.expanduser(value)))
        return expanded if expanded.is_absolute() else base / expanded

    def _resolve_many(self, value: str | list[str], base: Path) -> tuple[Path, ...]:
        items = [value] if isinstance(value, str) else list(value)
        return tuple(self._resolve(item, base) for item in items)
