"""Deterministic sampling and document comparison used by backfill and parity."""

from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

T = TypeVar("T")


def pick_sample(items: Sequence[T], sample_size: int) -> list[T]:
    """
    Pick an evenly strided, deterministic sample.

    If ``len(items) <= sample_size`` every item is returned. Otherwise the
    stride is ``len(items) / sample_size`` (a real number) and the items at
    ``floor(i * stride)`` for ``i`` in ``0..sample_size-1`` are returned, so
    the same input always yields the same sample.

    Example:
        pick_sample(list(range(12)), 10)  # [0, 1, 2, 3, 4, 6, 7, 8, 9, 10]
    """
    if sample_size < 0:
        raise ValueError("sample_size must be >= 0")
    if sample_size == 0:
        return []
    if len(items) <= sample_size:
        return list(items)

    step = len(items) / sample_size
    return [items[int(i * step)] for i in range(sample_size)]


def values_equal(left: Any, right: Any) -> bool:
    """Deep equality that keeps booleans distinct from numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        if left.keys() != right.keys():
            return False
        return all(values_equal(left[k], right[k]) for k in left)
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(values_equal(a, b) for a, b in zip(left, right, strict=True))
    return bool(left == right)


def source_subset_matches_target(
    source: dict[str, Any] | None, target: dict[str, Any] | None
) -> bool:
    """
    True iff both documents exist and every source field is in the target
    with a deep-equal value.

    Fields that only exist on the target (such as ``migrationMeta``) never
    cause a mismatch.
    """
    if source is None or target is None:
        return False
    for key, value in source.items():
        if key not in target or not values_equal(value, target[key]):
            return False
    return True


def stable_subset(data: dict[str, Any] | None, fields: Iterable[str]) -> dict[str, Any]:
    """Project a document onto an allow-list of fields (absent fields omitted)."""
    if not data:
        return {}
    return {field: data[field] for field in fields if field in data}
