"""
Catalog of camera sizes grouped by reduced aspect ratio.
"""

from __future__ import annotations

from bisect import bisect_left
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from cameraview_service.aspect_ratio import AspectRatio
from cameraview_service.size import Size


class SizeMap:
    """
    Mapping of AspectRatio to the sizes with that ratio, ascending by area.

    A bucket exists only while it holds at least one size. The map is rebuilt
    with clear() + add() after every capability scan and is not safe for
    concurrent mutation; callers serialize access.
    """

    def __init__(self) -> None:
        self._buckets: Dict[AspectRatio, List[Size]] = {}

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, int]]) -> SizeMap:
        """Build a map from a flat list of (width, height) pairs."""
        size_map = cls()
        for width, height in pairs:
            size_map.add(Size(width, height))
        return size_map

    def add(self, size: Size) -> bool:
        """
        File a size under its reduced aspect ratio.

        Returns:
            bool: False if the size was already present
        """
        ratio = size.aspect_ratio()
        bucket = self._buckets.setdefault(ratio, [])
        index = bisect_left(bucket, size)
        if index < len(bucket) and bucket[index] == size:
            return False
        bucket.insert(index, size)
        return True

    def remove(self, ratio: AspectRatio) -> None:
        """Drop the whole bucket for a ratio, if any."""
        self._buckets.pop(ratio, None)

    def ratios(self) -> Set[AspectRatio]:
        return set(self._buckets)

    def sizes(self, ratio: AspectRatio) -> Optional[Tuple[Size, ...]]:
        """
        Sizes for a ratio in ascending order.

        Returns:
            tuple of Size, or None if the ratio has never been populated
        """
        bucket = self._buckets.get(ratio)
        if bucket is None:
            return None
        return tuple(bucket)

    def clear(self) -> None:
        self._buckets.clear()

    def is_empty(self) -> bool:
        return not self._buckets

    def __contains__(self, ratio: object) -> bool:
        return ratio in self._buckets

    def __len__(self) -> int:
        return len(self._buckets)

    def __iter__(self) -> Iterator[AspectRatio]:
        return iter(sorted(self._buckets))

    def __str__(self) -> str:
        parts = []
        for ratio in sorted(self._buckets):
            sizes = ", ".join(str(size) for size in self._buckets[ratio])
            parts.append(f"{ratio}: [{sizes}]")
        return "{" + "; ".join(parts) + "}"
