"""Adapter for GTEx single-tissue eQTL ``snpgenes`` tables."""

from __future__ import annotations

import gzip
import logging
import re
import tarfile
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import IO, Any

import pandas as pd

from regionhub.adapters.base import DataAdapter
from regionhub.adapters.common import expand_input_paths, read_tab_chunks
from regionhub.models import RawEqtlRow


logger = logging.getLogger(__name__)

_TISSUE_RE = re.compile(r"([A-Z][^/]*?)_Analysis\.snpgenes")
_ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar")
_VARIANT_KEY_RE = re.compile(r"^[^_\s]+_\d+_")


def tissue_from_name(name: str) -> str | None:
    """``Adipose_Subcutaneous_Analysis.snpgenes`` -> ``Adipose_Subcutaneous``."""

    match = _TISSUE_RE.search(Path(name).name)
    return match.group(1) if match else None


def _is_archive(path: Path) -> bool:
    return path.name.lower().endswith(_ARCHIVE_SUFFIXES)


def _is_snpgenes(name: str) -> bool:
    return ".snpgenes" in Path(name).name


class GtexEqtlAdapter(DataAdapter):
    """Yield raw eQTL rows from ``.snpgenes`` files or the GTEx release tarball.

    Inputs may be individual ``*.snpgenes`` files, directories holding them, or
    a ``GTEx_Analysis_*_eQTLs.tar.gz`` archive. Rows are not parsed here; the
    tissue is attached from the file name. A leading column-name row in each
    file is dropped and counted in ``header_rows``.
    """

    name = "gtex_eqtl"

    def __init__(
        self,
        *,
        input_paths: str | Path | Iterable[str | Path],
        chunksize: int = 100_000,
    ) -> None:
        self.input_paths = [
            path
            for path in expand_input_paths(input_paths)
            if _is_archive(path) or _is_snpgenes(path.name)
        ]
        self.chunksize = chunksize
        self.tissues: set[str] = set()
        self.header_rows = 0

    def read(self) -> Iterator[RawEqtlRow]:
        self.header_rows = 0
        for input_path in self.input_paths:
            if _is_archive(input_path):
                yield from self._read_archive(input_path)
            else:
                with input_path.open("rb") as stream:
                    yield from self._read_stream(stream, input_path.name)

    def _read_archive(self, archive_path: Path) -> Iterator[RawEqtlRow]:
        with tarfile.open(archive_path, "r:*") as archive:
            for member in archive:
                if not member.isfile() or not _is_snpgenes(member.name):
                    continue
                stream = archive.extractfile(member)
                if stream is None:
                    continue
                with stream:
                    yield from self._read_stream(stream, member.name)

    def _read_stream(self, stream: IO[Any], name: str) -> Iterator[RawEqtlRow]:
        tissue = tissue_from_name(name)
        if tissue is None:
            logger.warning("Could not derive a tissue from %s; its rows carry no tissue.", name)
        else:
            self.tissues.add(tissue)

        source: Any = gzip.open(stream, "rb") if name.lower().endswith(".gz") else stream

        first = True
        for frame in read_tab_chunks(source, chunksize=self.chunksize, comment=None):
            for values in frame.itertuples(index=False, name=None):
                fields = tuple("" if pd.isna(value) else str(value) for value in values)
                if first:
                    first = False
                    if fields and not _VARIANT_KEY_RE.match(fields[0]):
                        self.header_rows += 1
                        continue
                yield RawEqtlRow(tissue=tissue, fields=fields, source_file=name)
