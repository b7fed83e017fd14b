"""Chromosome name normalization and natural ordering."""

from __future__ import annotations

import re

from regionhub.config import CANONICAL_CHROMOSOME_PATTERN


_CANONICAL_RE = re.compile(CANONICAL_CHROMOSOME_PATTERN)

_NAMED_ORDER: dict[str, int] = {"X": 0, "Y": 1, "M": 2, "MT": 2}


def strip_chr_prefix(name: str) -> str:
    return name[3:] if name.lower().startswith("chr") else name


def with_chr_prefix(name: str) -> str:
    """Return ``name`` in UCSC style (``chr1``, ``chrX``); ``MT`` becomes ``chrM``."""

    bare = strip_chr_prefix(name)
    if bare.upper() == "MT":
        bare = "M"
    return f"chr{bare}"


def is_canonical(name: str) -> bool:
    """True for the primary assembly chromosomes (1-22, X, Y, M/MT)."""

    return bool(_CANONICAL_RE.match(name.strip()))


def chromosome_sort_key(name: str) -> tuple[int, int, str]:
    """Natural chromosome order: numeric first, then X, Y, M/MT, then other contigs."""

    bare = strip_chr_prefix(name)
    if bare.isdigit():
        return (0, int(bare), "")
    if bare in _NAMED_ORDER:
        return (1, _NAMED_ORDER[bare], "")
    return (2, 0, bare)
