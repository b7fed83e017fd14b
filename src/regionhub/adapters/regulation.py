"""Adapter for Ensembl Regulation cell-type specific regulatory feature GFFs."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from regionhub.adapters.base import DataAdapter
from regionhub.adapters.common import (
    GTF_COLUMNS,
    TabularAdapterMixin,
    expand_input_paths,
    parse_gff_attributes,
    read_tab_chunks,
)
from regionhub.models import RegulatoryActivityRecord


logger = logging.getLogger(__name__)

_CELL_TYPE_RE = re.compile(r"RegulatoryFeatures_(.+?)\.gff(?:3)?(?:\.gz)?$")
_FEATURE_ID_RE = re.compile(r"^(ENSR\d+)")


def cell_type_from_path(path: Path) -> str:
    """``RegulatoryFeatures_K562.gff.gz`` -> ``K562``."""

    match = _CELL_TYPE_RE.search(path.name)
    if match:
        return match.group(1)
    return path.name.split(".", 1)[0]


class EnsemblRegulationAdapter(DataAdapter, TabularAdapterMixin):
    """Yield features flagged active in each per-cell-type GFF file.

    Only rows whose attributes mention ``=active`` (any case) are read;
    repressed, poised and inactive features are ignored.
    """

    name = "ensembl_regulation"

    def __init__(
        self,
        *,
        input_paths: str | Path | Iterable[str | Path],
        chunksize: int = 100_000,
    ) -> None:
        self.input_paths = expand_input_paths(
            input_paths,
            suffixes=(".gff", ".gff.gz", ".gff3", ".gff3.gz"),
        )
        self.chunksize = chunksize
        self.skipped_rows = 0

    @property
    def cell_types(self) -> list[str]:
        return [cell_type_from_path(path) for path in self.input_paths]

    def read(self) -> Iterator[RegulatoryActivityRecord]:
        self.skipped_rows = 0
        for input_path in self.input_paths:
            cell_type = cell_type_from_path(input_path)
            logger.debug("Reading regulatory features for %s from %s", cell_type, input_path)

            for frame in read_tab_chunks(input_path, names=GTF_COLUMNS, chunksize=self.chunksize):
                active = frame["attributes"].str.contains("=active", case=False, na=False)
                for row in frame[active].to_dict(orient="records"):
                    record = self._to_record(row, cell_type)
                    if record is None:
                        self.skipped_rows += 1
                        continue
                    yield record

    def _to_record(self, row: dict[str, Any], cell_type: str) -> RegulatoryActivityRecord | None:
        attributes = parse_gff_attributes(row.get("attributes"))
        id_match = _FEATURE_ID_RE.match(attributes.get("ID", ""))
        chromosome = self._to_string(row.get("seqname"))
        start = self._to_int(row.get("start"))
        end = self._to_int(row.get("end"))
        feature_class = self._to_string(row.get("feature"))

        if (
            id_match is None
            or chromosome is None
            or start is None
            or end is None
            or feature_class is None
        ):
            return None

        return RegulatoryActivityRecord(
            cell_type=cell_type,
            chromosome=chromosome,
            start=start,
            end=end,
            feature_id=id_match.group(1),
            feature_class=feature_class,
            bound_start=self._to_int(attributes.get("bound_start")),
            bound_end=self._to_int(attributes.get("bound_end")),
        )
