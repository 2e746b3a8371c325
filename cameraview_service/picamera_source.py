"""
Picamera2-backed capability source.

Reads supported sizes, facing and sensor rotation from libcamera through
Picamera2 and applies negotiated preview/still parameters back to it.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Dict, List, Optional, Tuple

from picamera2 import Picamera2

from cameraview_service.capability_source import (
    FLASH_MODE_OFF,
    FOCUS_MODE_AUTO,
    FOCUS_MODE_CONTINUOUS_PICTURE,
    FOCUS_MODE_FIXED,
    FOCUS_MODE_INFINITY,
    CameraParameters,
    CapabilitySource,
    Facing,
)
from cameraview_service.config import CONFIG
from cameraview_service.exceptions import CameraNotAvailableError, ConfigurationError
from cameraview_service.size import Size

logger = logging.getLogger(__name__)

# libcamera properties::Location values
LOCATION_FRONT = 0
LOCATION_BACK = 1
LOCATION_EXTERNAL = 2

_LOCATION_TO_FACING = {
    LOCATION_FRONT: Facing.FRONT,
    LOCATION_BACK: Facing.BACK,
    LOCATION_EXTERNAL: Facing.EXTERNAL,
}

# libcamera AfMode values
AF_MODE_MANUAL = 0
AF_MODE_AUTO = 1
AF_MODE_CONTINUOUS = 2


def _camera_facing(info: Dict[str, Any]) -> Facing:
    return _LOCATION_TO_FACING.get(info.get("Location"), Facing.EXTERNAL)


def _global_camera_info() -> List[Dict[str, Any]]:
    try:
        return list(Picamera2.global_camera_info())
    except Exception as e:
        logger.error(f"Error listing cameras: {e}")
        return []


# ---------- Hardware probes ----------

def has_camera() -> bool:
    """True if at least one camera is detected."""
    return len(_global_camera_info()) > 0


def has_front_camera() -> bool:
    """True if a front-facing camera is detected."""
    return any(_camera_facing(info) is Facing.FRONT for info in _global_camera_info())


def find_camera(facing: Facing, cameras: Optional[List[Dict[str, Any]]] = None) -> Optional[int]:
    """
    Index of the first camera with the given facing.

    Back-facing requests also accept external (USB/CSI ribbon) cameras, which
    is how most Raspberry Pi modules report themselves.

    Returns:
        int: Camera number, or None if nothing matches
    """
    if cameras is None:
        cameras = _global_camera_info()

    for index, info in enumerate(cameras):
        if _camera_facing(info) is facing:
            return info.get("Num", index)

    if facing is Facing.BACK:
        for index, info in enumerate(cameras):
            if _camera_facing(info) is Facing.EXTERNAL:
                return info.get("Num", index)
    return None


class Picamera2CapabilitySource:
    """
    Thread-safe Picamera2 adapter for CameraController.

    Preview sizes come from the configured candidates that fit in the sensor
    pixel array (the ISP scales to any of them). Picture sizes are the raw
    sensor mode sizes plus the full pixel array.
    """

    def __init__(self, camera_num: Optional[int] = None) -> None:
        self._camera_num = camera_num if camera_num is not None else CONFIG.camera_num
        self._picam2: Optional[Picamera2] = None
        self._lock = RLock()
        self._facing = Facing.BACK
        self._sensor_orientation = 0
        self._display_rotation = 0
        self._capture_rotation = 0
        self._still_config: Optional[Dict[str, Any]] = None

    @property
    def is_open(self) -> bool:
        return self._picam2 is not None

    @property
    def facing(self) -> Facing:
        return self._facing

    @property
    def sensor_orientation(self) -> int:
        return self._sensor_orientation

    @property
    def capture_rotation(self) -> int:
        return self._capture_rotation

    @property
    def display_rotation(self) -> int:
        return self._display_rotation

    @property
    def still_config(self) -> Optional[Dict[str, Any]]:
        return self._still_config

    def open(self, facing: Facing) -> None:
        """
        Open the camera matching the facing (or the configured camera number).

        Raises:
            CameraNotAvailableError: If no camera matches or it cannot be opened
        """
        with self._lock:
            if self._picam2 is not None:
                self.close()

            cameras = _global_camera_info()
            if not cameras:
                raise CameraNotAvailableError(
                    "No camera detected. Check hardware connection."
                )

            if self._camera_num is not None:
                camera_num = self._camera_num
            else:
                camera_num = find_camera(facing, cameras)
            if camera_num is None:
                raise CameraNotAvailableError(f"No {facing.value}-facing camera detected")

            try:
                self._picam2 = Picamera2(camera_num)
            except Exception as e:
                logger.error(f"Failed to open camera {camera_num}: {e}")
                raise CameraNotAvailableError(f"Camera {camera_num} unavailable: {e}") from e

            properties = self._picam2.camera_properties or {}
            self._facing = _LOCATION_TO_FACING.get(properties.get("Location"), facing)
            self._sensor_orientation = int(properties.get("Rotation", 0)) % 360

            logger.info(
                f"Opened camera {camera_num} ({properties.get('Model', 'unknown')}): "
                f"facing={self._facing.value}, rotation={self._sensor_orientation}"
            )

    def close(self) -> None:
        """Release the camera. Errors while closing are logged, not raised."""
        with self._lock:
            if self._picam2 is None:
                return
            try:
                logger.info("Closing camera...")
                self._picam2.close()
                logger.info("Camera closed successfully")
            except Exception as e:
                logger.error(f"Error closing camera: {e}")
            finally:
                self._picam2 = None
                self._still_config = None

    def _require_camera(self) -> Picamera2:
        if self._picam2 is None:
            raise CameraNotAvailableError("Camera not initialized")
        return self._picam2

    def _pixel_array_size(self) -> Optional[Tuple[int, int]]:
        size = (self._require_camera().camera_properties or {}).get("PixelArraySize")
        if not size:
            return None
        return (int(size[0]), int(size[1]))

    def preview_sizes(self) -> List[Tuple[int, int]]:
        with self._lock:
            pixel_array = self._pixel_array_size()
            sizes = []
            for candidate in CONFIG.preview_candidate_sizes:
                if pixel_array is None or (
                    candidate.width <= pixel_array[0] and candidate.height <= pixel_array[1]
                ):
                    sizes.append(candidate.as_tuple())
            return sizes

    def picture_sizes(self) -> List[Tuple[int, int]]:
        with self._lock:
            picam2 = self._require_camera()
            sizes: List[Tuple[int, int]] = []
            for mode in picam2.sensor_modes or []:
                size = mode.get("size") if isinstance(mode, dict) else None
                if size and len(size) == 2:
                    sizes.append((int(size[0]), int(size[1])))

            pixel_array = self._pixel_array_size()
            if pixel_array is not None and pixel_array not in sizes:
                sizes.append(pixel_array)
            return sizes

    def supported_focus_modes(self) -> List[str]:
        with self._lock:
            controls = self._require_camera().camera_controls or {}
            if "AfMode" in controls:
                return [FOCUS_MODE_CONTINUOUS_PICTURE, FOCUS_MODE_AUTO, FOCUS_MODE_INFINITY]
            return [FOCUS_MODE_FIXED]

    def supported_flash_modes(self) -> Optional[List[str]]:
        # Raspberry Pi camera modules have no flash
        return [FLASH_MODE_OFF]

    def _focus_controls(self, focus_mode: Optional[str]) -> Dict[str, Any]:
        if focus_mode == FOCUS_MODE_CONTINUOUS_PICTURE:
            return {"AfMode": AF_MODE_CONTINUOUS}
        if focus_mode == FOCUS_MODE_AUTO:
            return {"AfMode": AF_MODE_AUTO}
        if focus_mode == FOCUS_MODE_INFINITY:
            return {"AfMode": AF_MODE_MANUAL, "LensPosition": 0.0}
        return {}

    def apply(self, parameters: CameraParameters) -> None:
        """
        Reconfigure the preview stream and remember the still configuration.

        Raises:
            CameraNotAvailableError: If the camera is not open
            ConfigurationError: If Picamera2 rejects the configuration
        """
        with self._lock:
            picam2 = self._require_camera()
            try:
                was_started = picam2.started
                if was_started:
                    picam2.stop()

                preview_config = picam2.create_preview_configuration(
                    main={"size": parameters.preview_size.as_tuple()},
                    controls=self._focus_controls(parameters.focus_mode),
                )
                picam2.configure(preview_config)
                self._still_config = picam2.create_still_configuration(
                    main={"size": parameters.picture_size.as_tuple()},
                )
                self._capture_rotation = parameters.capture_rotation
                self._display_rotation = parameters.display_rotation

                if was_started:
                    picam2.start()

                logger.info(
                    f"Applied preview={parameters.preview_size}, picture={parameters.picture_size}, "
                    f"rotation={parameters.capture_rotation}"
                )
            except Exception as e:
                logger.error(f"Failed to apply camera parameters: {e}")
                raise ConfigurationError(f"Camera configuration failed: {e}") from e

    def set_display_rotation(self, degrees: int) -> None:
        with self._lock:
            self._display_rotation = degrees
            logger.debug(f"Display rotation set to {degrees}")

    def start_preview(self) -> None:
        with self._lock:
            picam2 = self._require_camera()
            if not picam2.started:
                picam2.start()
                logger.debug("Preview started")

    def stop_preview(self) -> None:
        with self._lock:
            if self._picam2 is not None and self._picam2.started:
                self._picam2.stop()
                logger.debug("Preview stopped")


def supports_autofocus(source: CapabilitySource) -> bool:
    """True if the open camera exposes autofocus controls."""
    return FOCUS_MODE_CONTINUOUS_PICTURE in source.supported_focus_modes()


def has_flash(source: CapabilitySource) -> bool:
    """True if the open camera offers any flash mode besides off."""
    return any(mode != FLASH_MODE_OFF for mode in source.supported_flash_modes() or [])
