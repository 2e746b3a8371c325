"""
Tests for AspectRatio and Size value types.
"""

import pytest

from cameraview_service.aspect_ratio import (
    DEFAULT_ASPECT_RATIO,
    SECONDARY_ASPECT_RATIO,
    AspectRatio,
)
from cameraview_service.exceptions import InvalidArgumentError
from cameraview_service.size import Size


class TestAspectRatioConstruction:
    """Test reduction and validation."""

    def test_of_reduces_to_lowest_terms(self):
        """Test that ratios are stored reduced."""
        ratio = AspectRatio.of(1920, 1080)

        assert ratio.x == 16
        assert ratio.y == 9

    @pytest.mark.parametrize("a,b", [(4, 3), (16, 9), (1, 1), (3, 2), (7, 5)])
    @pytest.mark.parametrize("k", [1, 2, 3, 80, 1000])
    def test_scaled_pairs_are_equal(self, a, b, k):
        """Test that scaling both components gives the same ratio."""
        assert AspectRatio.of(a, b) == AspectRatio.of(k * a, k * b)
        assert hash(AspectRatio.of(a, b)) == hash(AspectRatio.of(k * a, k * b))

    def test_direct_construction_also_reduces(self):
        """Test that the constructor keeps the lowest-terms invariant."""
        assert AspectRatio(8, 6) == AspectRatio(4, 3)

    @pytest.mark.parametrize("width,height", [(0, 3), (4, 0), (-4, 3), (4, -3)])
    def test_non_positive_rejected(self, width, height):
        """Test that non-positive components are rejected."""
        with pytest.raises(InvalidArgumentError):
            AspectRatio.of(width, height)

    def test_invalid_argument_is_value_error(self):
        """Test that InvalidArgumentError can be caught as ValueError."""
        with pytest.raises(ValueError):
            AspectRatio.of(0, 0)

    def test_defaults(self):
        """Test the fallback ratio constants."""
        assert DEFAULT_ASPECT_RATIO == AspectRatio(4, 3)
        assert SECONDARY_ASPECT_RATIO == AspectRatio(16, 9)


class TestAspectRatioParse:
    """Test parsing from strings."""

    def test_parse_valid(self):
        """Test parsing a well-formed ratio."""
        assert AspectRatio.parse("16:9") == AspectRatio(16, 9)
        assert AspectRatio.parse(" 8:6 ") == AspectRatio(4, 3)

    @pytest.mark.parametrize("text", ["16/9", "16:9:1", "a:b", "", "0:1", "4:-3"])
    def test_parse_invalid(self, text):
        """Test that malformed strings are rejected."""
        with pytest.raises(InvalidArgumentError):
            AspectRatio.parse(text)

    def test_str(self):
        """Test the x:y string form."""
        assert str(AspectRatio.of(1280, 960)) == "4:3"


class TestAspectRatioOperations:
    """Test matches and inverse."""

    def test_matches_exact(self):
        """Test cross-multiplication match for sizes of the same ratio."""
        ratio = AspectRatio(4, 3)

        assert ratio.matches(Size(640, 480))
        assert ratio.matches(Size(4032, 3024))
        assert not ratio.matches(Size(1920, 1080))

    def test_matches_near_ratio_is_false(self):
        """Test that visually close but different ratios do not match."""
        assert not AspectRatio(16, 9).matches(Size(1366, 768))

    def test_inverse(self):
        """Test that inverse swaps components."""
        assert AspectRatio(16, 9).inverse() == AspectRatio(9, 16)
        assert AspectRatio(16, 9).inverse().inverse() == AspectRatio(16, 9)

    def test_immutable(self):
        """Test that ratios cannot be mutated."""
        ratio = AspectRatio(4, 3)

        with pytest.raises(AttributeError):
            ratio.x = 5

    def test_ordering_is_lexicographic(self):
        """Test deterministic ordering used for tie-breaks."""
        ratios = [AspectRatio(16, 9), AspectRatio(4, 3), AspectRatio(3, 2), AspectRatio(4, 1)]

        assert sorted(ratios) == [
            AspectRatio(3, 2),
            AspectRatio(4, 1),
            AspectRatio(4, 3),
            AspectRatio(16, 9),
        ]


class TestSize:
    """Test Size ordering and helpers."""

    def test_ordered_by_area(self):
        """Test that sizes sort by area ascending."""
        sizes = [Size(1920, 1080), Size(320, 240), Size(640, 480)]

        assert sorted(sizes) == [Size(320, 240), Size(640, 480), Size(1920, 1080)]

    def test_area_tie_broken_by_width(self):
        """Test that equal areas sort by width."""
        assert Size(300, 400) < Size(400, 300)
        assert sorted([Size(400, 300), Size(300, 400)]) == [Size(300, 400), Size(400, 300)]

    def test_equality_is_structural(self):
        """Test structural equality and hashing."""
        assert Size(640, 480) == Size(640, 480)
        assert len({Size(640, 480), Size(640, 480)}) == 1

    def test_aspect_ratio(self):
        """Test derived ratio."""
        assert Size(1280, 720).aspect_ratio() == AspectRatio(16, 9)

    def test_non_positive_rejected(self):
        """Test that non-positive sizes are rejected."""
        with pytest.raises(InvalidArgumentError):
            Size(0, 480)

    def test_parse_and_str(self):
        """Test WxH parsing and formatting."""
        assert Size.parse("1920x1080") == Size(1920, 1080)
        assert str(Size(640, 480)) == "640x480"

    def test_parse_invalid(self):
        """Test that malformed sizes are rejected."""
        with pytest.raises(InvalidArgumentError):
            Size.parse("1920*1080")

    def test_swapped(self):
        """Test width/height swap."""
        assert Size(640, 480).swapped() == Size(480, 640)
