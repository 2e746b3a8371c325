"""
Interface to the camera hardware that supplies capabilities and accepts
negotiated parameters.

The controller only talks to the hardware through this protocol, so any
driver (Picamera2, a test double) can back it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from cameraview_service.size import Size


class Facing(str, Enum):
    """Which way the camera points."""

    BACK = "back"
    FRONT = "front"
    EXTERNAL = "external"

    @property
    def is_front(self) -> bool:
        return self is Facing.FRONT


# Focus modes, in the vocabulary used by the controller
FOCUS_MODE_CONTINUOUS_PICTURE = "continuous-picture"
FOCUS_MODE_AUTO = "auto"
FOCUS_MODE_FIXED = "fixed"
FOCUS_MODE_INFINITY = "infinity"

FLASH_MODE_OFF = "off"


@dataclass(frozen=True)
class CameraParameters:
    """Parameter set pushed to the hardware after a negotiation pass."""

    preview_size: Size
    picture_size: Size
    capture_rotation: int
    display_rotation: int
    focus_mode: Optional[str] = None
    flash_mode: Optional[str] = None


@runtime_checkable
class CapabilitySource(Protocol):
    """Hardware collaborator used by CameraController."""

    @property
    def is_open(self) -> bool: ...

    @property
    def facing(self) -> Facing: ...

    @property
    def sensor_orientation(self) -> int: ...

    def open(self, facing: Facing) -> None:
        """Open the first camera with this facing; raise CameraNotAvailableError if none."""
        ...

    def close(self) -> None: ...

    def preview_sizes(self) -> List[Tuple[int, int]]: ...

    def picture_sizes(self) -> List[Tuple[int, int]]: ...

    def supported_focus_modes(self) -> List[str]: ...

    def supported_flash_modes(self) -> Optional[List[str]]: ...

    def apply(self, parameters: CameraParameters) -> None:
        """Push parameters to the hardware; raise ConfigurationError on failure."""
        ...

    def set_display_rotation(self, degrees: int) -> None: ...

    def start_preview(self) -> None: ...

    def stop_preview(self) -> None: ...
