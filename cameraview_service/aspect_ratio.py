"""
Exact-rational aspect ratio used as the grouping key for camera sizes.

Ratios are always kept in lowest terms, so 640x480 and 1280x960 land on the
same 4:3 key. All comparisons use integer cross-multiplication.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import gcd

from cameraview_service.exceptions import InvalidArgumentError
from cameraview_service.size import Size


@dataclass(frozen=True, order=True)
class AspectRatio:
    """
    Immutable width:height ratio in lowest terms.

    Ordering is lexicographic on (x, y) and only serves deterministic
    tie-breaks; it is not an ordering by numeric value.
    """

    x: int
    y: int

    def __post_init__(self) -> None:
        if self.x <= 0 or self.y <= 0:
            raise InvalidArgumentError(
                f"aspect ratio components must be positive (got {self.x}:{self.y})"
            )
        divisor = gcd(self.x, self.y)
        if divisor != 1:
            object.__setattr__(self, "x", self.x // divisor)
            object.__setattr__(self, "y", self.y // divisor)

    @classmethod
    def of(cls, width: int, height: int) -> AspectRatio:
        """
        Build the reduced ratio for a width/height pair.

        Raises:
            InvalidArgumentError: If either value is <= 0
        """
        return cls(width, height)

    @classmethod
    def parse(cls, text: str) -> AspectRatio:
        """
        Parse an "x:y" string such as "16:9".

        Raises:
            InvalidArgumentError: If the text is malformed or non-positive
        """
        parts = text.strip().split(":")
        if len(parts) != 2:
            raise InvalidArgumentError(f"Invalid aspect ratio format: {text!r}")
        try:
            x, y = int(parts[0]), int(parts[1])
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid aspect ratio format: {text!r}") from e
        return cls.of(x, y)

    def matches(self, size: Size) -> bool:
        """True if the size has exactly this ratio."""
        return size.width * self.y == size.height * self.x

    def inverse(self) -> AspectRatio:
        return AspectRatio(self.y, self.x)

    def __str__(self) -> str:
        return f"{self.x}:{self.y}"


# Fallback ratios tried when the requested one is not supported
DEFAULT_ASPECT_RATIO = AspectRatio(4, 3)
SECONDARY_ASPECT_RATIO = AspectRatio(16, 9)
