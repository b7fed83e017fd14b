"""Interval overlap primitive backed by bioframe."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, TypeVar

import bioframe as bf
import pandas as pd

from regionhub.chromosomes import chromosome_sort_key


class HasCoordinates(Protocol):
    chromosome: str
    start: int
    end: int


A = TypeVar("A", bound=HasCoordinates)
B = TypeVar("B", bound=HasCoordinates)


def sort_records(records: Sequence[A]) -> list[A]:
    """Sort by natural chromosome order, then start, then end."""

    return sorted(
        records,
        key=lambda record: (chromosome_sort_key(record.chromosome), record.start, record.end),
    )


def is_sorted(records: Sequence[HasCoordinates]) -> bool:
    keys = [(chromosome_sort_key(record.chromosome), record.start) for record in records]
    return all(left <= right for left, right in zip(keys, keys[1:]))


def to_bedframe(records: Sequence[HasCoordinates]) -> pd.DataFrame:
    """Build a ``chrom/start/end`` frame whose ``idx`` column points back into ``records``."""

    return pd.DataFrame(
        {
            "chrom": [record.chromosome for record in records],
            "start": pd.array([record.start for record in records], dtype="int64"),
            "end": pd.array([record.end for record in records], dtype="int64"),
            "idx": pd.array(range(len(records)), dtype="int64"),
        }
    )


def intersect(
    left: Sequence[A],
    right: Sequence[B],
    *,
    assume_sorted: bool = False,
) -> list[tuple[A, B]]:
    """Return every (left, right) pair whose half-open intervals overlap.

    Each overlapping pair is reported exactly once, ordered by the left record's
    position in the (sorted) input and then by the right record's. With
    ``assume_sorted`` the inputs are taken as already ordered by
    (chromosome, start) and the sort step is skipped.
    """

    if not left or not right:
        return []

    if not assume_sorted:
        left = sort_records(left)
        right = sort_records(right)

    overlaps = bf.overlap(
        to_bedframe(left),
        to_bedframe(right),
        how="inner",
        suffixes=("_a", "_b"),
    )
    if overlaps.empty:
        return []

    overlaps = overlaps.sort_values(["idx_a", "idx_b"], kind="mergesort")
    return [
        (left[int(a_idx)], right[int(b_idx)])
        for a_idx, b_idx in zip(overlaps["idx_a"], overlaps["idx_b"])
    ]

