"""
Size value type for camera resolutions.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering
from typing import TYPE_CHECKING

from cameraview_service.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from cameraview_service.aspect_ratio import AspectRatio


@total_ordering
@dataclass(frozen=True)
class Size:
    """
    Immutable width/height pair in pixels.

    Sizes order by area ascending, ties broken by width, so that a sorted
    bucket always yields the same smallest and largest entries.
    """

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidArgumentError(
                f"size must be positive (got {self.width}x{self.height})"
            )

    @property
    def area(self) -> int:
        return self.width * self.height

    def sort_key(self) -> tuple[int, int]:
        return (self.area, self.width)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Size):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def aspect_ratio(self) -> AspectRatio:
        """Reduced aspect ratio of this size."""
        from cameraview_service.aspect_ratio import AspectRatio

        return AspectRatio.of(self.width, self.height)

    def swapped(self) -> Size:
        return Size(self.height, self.width)

    def as_tuple(self) -> tuple[int, int]:
        return (self.width, self.height)

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"

    @classmethod
    def parse(cls, text: str) -> Size:
        """
        Parse a "WxH" string such as "1920x1080".

        Raises:
            InvalidArgumentError: If the text is not two integers separated by 'x'
        """
        parts = text.strip().lower().split("x")
        if len(parts) != 2:
            raise InvalidArgumentError(f"Invalid size format: {text!r}")
        try:
            width, height = int(parts[0]), int(parts[1])
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid size format: {text!r}") from e
        return cls(width, height)
