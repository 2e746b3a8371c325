"""
Resolution negotiation between preview and picture capabilities.

Given a requested aspect ratio, the preview SizeMap, the picture SizeMap and
the display surface, pick one mutually supported ratio and the preview/picture
sizes to apply. Everything here is a pure function of its inputs.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence, Set

from cameraview_service.aspect_ratio import (
    DEFAULT_ASPECT_RATIO,
    SECONDARY_ASPECT_RATIO,
    AspectRatio,
)
from cameraview_service.exceptions import InvalidArgumentError, NoSupportedConfigurationError
from cameraview_service.orientation import is_landscape, validate_orientation
from cameraview_service.size import Size
from cameraview_service.size_map import SizeMap

logger = logging.getLogger(__name__)


class Negotiation(NamedTuple):
    """Result of one negotiation pass."""

    ratio: AspectRatio
    preview_size: Size
    picture_size: Size


def mutual_ratios(preview_sizes: SizeMap, picture_sizes: SizeMap) -> Set[AspectRatio]:
    """Ratios present in both maps."""
    return preview_sizes.ratios() & picture_sizes.ratios()


def is_ratio_supported(ratio: AspectRatio, preview_sizes: SizeMap, picture_sizes: SizeMap) -> bool:
    return ratio in preview_sizes and ratio in picture_sizes


# ---------- Ratio selection strategies ----------

class RatioStrategy(ABC):
    """One tier of the ratio fallback policy."""

    name = "strategy"

    @abstractmethod
    def pick(
        self,
        requested: AspectRatio,
        preview_sizes: SizeMap,
        picture_sizes: SizeMap,
    ) -> Optional[AspectRatio]:
        """Return a ratio present in both maps, or None to defer to the next tier."""


@dataclass(frozen=True)
class Requested(RatioStrategy):
    """Use the caller's ratio unchanged."""

    name = "requested"

    def pick(self, requested, preview_sizes, picture_sizes):
        if is_ratio_supported(requested, preview_sizes, picture_sizes):
            return requested
        return None


@dataclass(frozen=True)
class DefaultRatio(RatioStrategy):
    """Use a fixed ratio if both maps support it."""

    ratio: AspectRatio

    @property
    def name(self) -> str:
        return f"default({self.ratio})"

    def pick(self, requested, preview_sizes, picture_sizes):
        if is_ratio_supported(self.ratio, preview_sizes, picture_sizes):
            return self.ratio
        return None


@dataclass(frozen=True)
class AnyMutual(RatioStrategy):
    """
    Use the first ratio present in both maps.

    Preview ratios are scanned in ascending AspectRatio order so the result
    does not depend on set iteration order.
    """

    name = "any_mutual"

    def pick(self, requested, preview_sizes, picture_sizes):
        picture_ratios = picture_sizes.ratios()
        for ratio in sorted(preview_sizes.ratios()):
            if ratio in picture_ratios:
                return ratio
        return None


DEFAULT_POLICY: Sequence[RatioStrategy] = (
    Requested(),
    DefaultRatio(DEFAULT_ASPECT_RATIO),
    DefaultRatio(SECONDARY_ASPECT_RATIO),
    AnyMutual(),
)


def select_aspect_ratio(
    requested: AspectRatio,
    preview_sizes: SizeMap,
    picture_sizes: SizeMap,
    policy: Sequence[RatioStrategy] = DEFAULT_POLICY,
) -> AspectRatio:
    """
    Pick the effective aspect ratio by walking the fallback policy.

    Args:
        requested: Ratio asked for by the caller
        preview_sizes: Preview capabilities
        picture_sizes: Picture capabilities
        policy: Ordered strategies, first match wins

    Returns:
        AspectRatio: A ratio present in both maps

    Raises:
        NoSupportedConfigurationError: If no strategy finds a mutual ratio
    """
    for strategy in policy:
        ratio = strategy.pick(requested, preview_sizes, picture_sizes)
        if ratio is not None:
            if ratio != requested:
                logger.debug(f"Aspect ratio {requested} not supported, using {ratio} ({strategy.name})")
            return ratio

    raise NoSupportedConfigurationError(
        f"No aspect ratio supported by both preview {sorted(map(str, preview_sizes.ratios()))} "
        f"and picture {sorted(map(str, picture_sizes.ratios()))} sizes"
    )


# ---------- Size selection ----------

def choose_optimal_size(
    sizes: Sequence[Size],
    surface: Optional[Size],
    display_orientation: int = 0,
) -> Size:
    """
    Choose the smallest preview size that covers the surface.

    Args:
        sizes: Candidate sizes, ascending by area
        surface: Measured surface size, or None if not laid out yet
        display_orientation: Screen rotation in degrees

    Returns:
        Size: The smallest size when the surface is unknown, the first size
        covering the surface, or the largest size if none covers it

    Raises:
        InvalidArgumentError: If sizes is empty
    """
    if not sizes:
        raise InvalidArgumentError("No candidate sizes to choose from")

    if surface is None:
        return sizes[0]

    # Camera sizes are landscape-relative; the surface is measured upright
    if is_landscape(display_orientation):
        desired = surface.swapped()
    else:
        desired = surface

    for size in sizes:
        if size.width >= desired.width and size.height >= desired.height:
            return size
    return sizes[-1]


def largest_size(sizes: Sequence[Size]) -> Size:
    if not sizes:
        raise InvalidArgumentError("No candidate sizes to choose from")
    return sizes[-1]


def negotiate(
    requested: AspectRatio,
    preview_sizes: SizeMap,
    picture_sizes: SizeMap,
    surface: Optional[Size] = None,
    display_orientation: int = 0,
    policy: Sequence[RatioStrategy] = DEFAULT_POLICY,
) -> Negotiation:
    """
    Compute the effective ratio and the preview/picture sizes to apply.

    Always starts from the requested ratio, so repeated calls with the same
    inputs give the same result.

    Raises:
        InvalidArgumentError: If display_orientation is not a right angle
        NoSupportedConfigurationError: If no ratio is mutually supported
    """
    validate_orientation(display_orientation, "display_orientation")

    ratio = select_aspect_ratio(requested, preview_sizes, picture_sizes, policy)
    preview_size = choose_optimal_size(preview_sizes.sizes(ratio), surface, display_orientation)
    picture_size = largest_size(picture_sizes.sizes(ratio))

    logger.debug(f"Negotiated {ratio}: preview={preview_size}, picture={picture_size}")
    return Negotiation(ratio, preview_size, picture_size)
