"""Shared utilities for genomic text-file adapters."""

from __future__ import annotations

import csv
import glob
import gzip
import os
import re
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import IO, Any

import pandas as pd


GTF_COLUMNS: tuple[str, ...] = (
    "seqname",
    "source",
    "feature",
    "start",
    "end",
    "score",
    "strand",
    "frame",
    "attributes",
)

_GTF_ATTRIBUTE_RE = re.compile(r'(\S+)\s+"([^"]*)"')


def _matches_suffix(path: Path, suffixes: tuple[str, ...]) -> bool:
    name = path.name.lower()
    return any(name.endswith(suffix) for suffix in suffixes)


def expand_input_paths(
    input_paths: str | Path | Iterable[str | Path],
    suffixes: tuple[str, ...] = (),
) -> list[Path]:
    """Expand file, directory, or glob inputs into concrete paths.

    Directories and globs are filtered by ``suffixes`` (case-insensitive); an
    explicit file path is always kept.
    """

    if isinstance(input_paths, (str, Path)):
        items: list[str | Path] = [input_paths]
    else:
        items = list(input_paths)

    def wanted(path: Path) -> bool:
        return not suffixes or _matches_suffix(path, suffixes)

    resolved: list[Path] = []
    for item in items:
        expanded_item = os.path.expandvars(os.path.expanduser(str(item)))
        item_path = Path(expanded_item)

        if item_path.is_dir():
            resolved.extend(
                sorted(path for path in item_path.iterdir() if path.is_file() and wanted(path))
            )
            continue

        if item_path.exists():
            resolved.append(item_path)
            continue

        matches = [Path(path) for path in glob.glob(expanded_item)]
        resolved.extend(sorted(match for match in matches if match.is_file() and wanted(match)))

    return resolved


def open_text(path: str | Path) -> IO[str]:
    """Open a plain or gzip-compressed text file for reading."""

    path = Path(path)
    if path.name.lower().endswith(".gz"):
        return gzip.open(path, "rt")
    return path.open("r")


def read_tab_chunks(
    source: str | Path | IO[Any],
    *,
    names: Iterable[str] | None = None,
    chunksize: int = 100_000,
    comment: str | None = "#",
) -> Iterator[pd.DataFrame]:
    """Stream a headerless tab-separated file as string-typed frames.

    Quoting is disabled because GTF/GFF attribute columns carry literal quotes.
    An empty file yields nothing.
    """

    compression = "infer" if isinstance(source, (str, Path)) else None
    try:
        reader = pd.read_csv(
            source,
            sep="\t",
            header=None,
            names=list(names) if names is not None else None,
            index_col=False,
            dtype=str,
            comment=comment,
            quoting=csv.QUOTE_NONE,
            keep_default_na=False,
            na_values=[""],
            compression=compression,
            chunksize=chunksize,
            on_bad_lines="skip",
        )
    except pd.errors.EmptyDataError:
        return

    with reader:
        yield from reader


def strip_version(identifier: str) -> str:
    """``ENSG00000227232.5`` -> ``ENSG00000227232``."""

    return identifier.split(".", 1)[0]


def parse_gtf_attributes(text: Any) -> dict[str, str]:
    """Parse ``key "value";`` pairs, keeping the first value of repeated keys."""

    attributes: dict[str, str] = {}
    if not isinstance(text, str):
        return attributes
    for key, value in _GTF_ATTRIBUTE_RE.findall(text):
        attributes.setdefault(key, value)
    return attributes


def parse_gff_attributes(text: Any) -> dict[str, str]:
    """Parse GFF3 ``key=value;`` pairs."""

    attributes: dict[str, str] = {}
    if not isinstance(text, str):
        return attributes
    for part in text.split(";"):
        key, sep, value = part.strip().partition("=")
        if sep and key:
            attributes.setdefault(key, value)
    return attributes


class TabularAdapterMixin:
    """Common conversions for tab-separated source adapters."""

    @staticmethod
    def _to_string(value: Any) -> str | None:
        if value is None or pd.isna(value):
            return None

        cleaned = str(value).strip()
        if not cleaned or cleaned.lower() in {"nan", "none", "null", "na", "."}:
            return None

        return cleaned

    @staticmethod
    def _to_int(value: Any) -> int | None:
        text = TabularAdapterMixin._to_string(value)
        if text is None:
            return None

        try:
            return int(text)
        except (TypeError, ValueError):
            return None
