"""Ordering policies for image lists."""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum
from functools import cmp_to_key
from pathlib import Path

_DIGITS_RE = re.compile(r"\d+")


class SortPolicy(str, Enum):
    NATURAL = "natural"
    MODIFIED_DESC = "modified"


def _first_number(name: str) -> int | None:
    match = _DIGITS_RE.search(name)
    if match is None:
        return None
    return int(match.group())


def _lexical(a: str, b: str) -> int:
    return (a > b) - (a < b)


def natural_compare(a: str, b: str) -> int:
    """Compare two file names so that "img2" precedes "img10".

    Only the first run of digits is considered. Names lacking digits fall
    back to a plain lexical comparison.
    """

    a_num = _first_number(a)
    b_num = _first_number(b)
    if a_num is not None and b_num is not None and a_num != b_num:
        return -1 if a_num < b_num else 1
    return _lexical(a, b)


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def _order_natural(paths: list[Path]) -> list[Path]:
    return sorted(paths, key=cmp_to_key(lambda a, b: natural_compare(a.name, b.name)))


def _order_modified(paths: list[Path]) -> list[Path]:
    stamps = {path: _mtime(path) for path in paths}

    def compare(a: Path, b: Path) -> int:
        a_time = stamps[a]
        b_time = stamps[b]
        if a_time is None or b_time is None:
            return 0
        # newest first
        return (b_time > a_time) - (b_time < a_time)

    return sorted(paths, key=cmp_to_key(compare))


def order_paths(
    paths: Iterable[Path | str],
    policy: SortPolicy = SortPolicy.NATURAL,
) -> list[Path]:
    if isinstance(paths, (set, frozenset)):
        items = sorted((Path(p) for p in paths), key=str)
    else:
        items = [Path(p) for p in paths]
    if not items:
        return []
    if policy is SortPolicy.MODIFIED_DESC:
        return _order_modified(items)
    return _order_natural(items)


__all__ = ["SortPolicy", "natural_compare", "order_paths"]
