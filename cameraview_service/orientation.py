"""
Orientation math for camera preview and capture output.

Display rotation orients the live preview on screen. Capture rotation is
written into the output image (EXIF or pixels). For back-facing cameras the
capture side adds an extra 180 in landscape, which brings it back in line with
the preview; for front-facing cameras the two mirror each other.
"""

from __future__ import annotations

from cameraview_service.exceptions import InvalidArgumentError

VALID_ORIENTATIONS = (0, 90, 180, 270)
LANDSCAPE_90 = 90
LANDSCAPE_270 = 270


def validate_orientation(degrees: int, name: str = "orientation") -> int:
    """
    Check that a value is one of the four right angles.

    Raises:
        InvalidArgumentError: If degrees is not 0, 90, 180 or 270
    """
    if degrees not in VALID_ORIENTATIONS:
        raise InvalidArgumentError(
            f"{name} must be one of {VALID_ORIENTATIONS} (got {degrees})"
        )
    return degrees


def is_landscape(orientation_degrees: int) -> bool:
    """True for 90 and 270 degree screen orientations."""
    return orientation_degrees in (LANDSCAPE_90, LANDSCAPE_270)


def display_rotation(facing_is_front: bool, sensor_orientation: int, screen_orientation: int) -> int:
    """
    Degrees to rotate the preview so it appears upright.

    Front-facing previews are mirrored, so the rotation is applied in the
    opposite direction.

    Args:
        facing_is_front: True for a front-facing camera
        sensor_orientation: Sensor mounting angle reported by the camera
        screen_orientation: Current screen rotation

    Returns:
        int: Rotation in degrees (0, 90, 180 or 270)
    """
    validate_orientation(sensor_orientation, "sensor_orientation")
    validate_orientation(screen_orientation, "screen_orientation")

    if facing_is_front:
        return (360 - (sensor_orientation + screen_orientation) % 360) % 360
    return (sensor_orientation - screen_orientation + 360) % 360


def capture_rotation(facing_is_front: bool, sensor_orientation: int, screen_orientation: int) -> int:
    """
    Degrees to rotate a captured image so it views correctly.

    Args:
        facing_is_front: True for a front-facing camera
        sensor_orientation: Sensor mounting angle reported by the camera
        screen_orientation: Current screen rotation

    Returns:
        int: Rotation in degrees (0, 90, 180 or 270)
    """
    validate_orientation(sensor_orientation, "sensor_orientation")
    validate_orientation(screen_orientation, "screen_orientation")

    if facing_is_front:
        return (sensor_orientation + screen_orientation) % 360
    landscape_flip = 180 if is_landscape(screen_orientation) else 0
    return (sensor_orientation + screen_orientation + landscape_flip) % 360
