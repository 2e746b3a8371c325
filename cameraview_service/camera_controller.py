"""
Camera controller module for CameraView Service.

Owns the preview and picture SizeMaps for the open camera, rebuilds them on
every open, and runs negotiation and orientation math whenever the requested
ratio, surface, screen rotation, focus or flash changes.
"""

from __future__ import annotations

import logging
from enum import Enum
from threading import RLock
from typing import Any, Dict, List, Optional, Set

from cameraview_service.aspect_ratio import AspectRatio
from cameraview_service.capability_source import (
    FLASH_MODE_OFF,
    FOCUS_MODE_CONTINUOUS_PICTURE,
    FOCUS_MODE_FIXED,
    FOCUS_MODE_INFINITY,
    CameraParameters,
    CapabilitySource,
    Facing,
)
from cameraview_service.config import CONFIG, FLASH_MODES, CameraConfig
from cameraview_service.exceptions import (
    CameraError,
    CameraNotAvailableError,
    InvalidArgumentError,
    UnsupportedAspectRatioError,
)
from cameraview_service.negotiator import Negotiation, mutual_ratios, negotiate
from cameraview_service.orientation import capture_rotation, display_rotation, validate_orientation
from cameraview_service.size import Size
from cameraview_service.size_map import SizeMap

logger = logging.getLogger(__name__)


class CameraState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    ADJUSTING = "adjusting"


def choose_focus_mode(supported: List[str], auto_focus: bool) -> Optional[str]:
    """
    Pick a focus mode: continuous when autofocus is wanted, else fixed,
    else infinity, else whatever the camera lists first.
    """
    if not supported:
        return None
    if auto_focus and FOCUS_MODE_CONTINUOUS_PICTURE in supported:
        return FOCUS_MODE_CONTINUOUS_PICTURE
    if FOCUS_MODE_FIXED in supported:
        return FOCUS_MODE_FIXED
    if FOCUS_MODE_INFINITY in supported:
        return FOCUS_MODE_INFINITY
    return supported[0]


def choose_flash_mode(supported: Optional[List[str]], requested: str, current: str) -> str:
    """
    Pick the flash mode to apply.

    The requested mode wins when supported. Otherwise the current mode is
    kept if it is supported, and flash is forced off if it is not.
    """
    if supported and requested in supported:
        return requested
    if not supported or current not in supported:
        return FLASH_MODE_OFF
    return current


class CameraController:
    """
    Thread-safe controller driving negotiation for one camera.

    State transitions: CLOSED -> OPENING -> OPEN -> ADJUSTING -> OPEN, and
    back to CLOSED on stop() or a failed open. Capability rescans and
    negotiation passes run under the same reentrant lock.
    """

    def __init__(self, source: CapabilitySource, config: CameraConfig = CONFIG) -> None:
        """
        Initialize the camera controller.

        Args:
            source: Hardware capability source
            config: Startup defaults
        """
        self._source = source
        self._lock = RLock()  # Reentrant lock for nested lock acquisition
        self._state = CameraState.CLOSED

        self._preview_sizes = SizeMap()
        self._picture_sizes = SizeMap()

        self._requested_ratio: Optional[AspectRatio] = None
        self._default_ratio = config.requested_aspect_ratio
        self._facing = Facing(config.facing)
        self._display_orientation = config.display_orientation
        self._surface: Optional[Size] = None
        self._auto_focus = config.auto_focus
        self._flash = config.flash
        self._focus_mode: Optional[str] = None
        self._showing_preview = False
        self._negotiation: Optional[Negotiation] = None

        logger.debug(
            f"Initialized with: facing={self._facing.value}, ratio={self._default_ratio}, "
            f"display_orientation={self._display_orientation}"
        )

    # ---------- Lifecycle ----------

    @property
    def state(self) -> CameraState:
        return self._state

    def is_open(self) -> bool:
        with self._lock:
            return self._state in (CameraState.OPEN, CameraState.ADJUSTING)

    @property
    def preview_sizes(self) -> SizeMap:
        return self._preview_sizes

    @property
    def picture_sizes(self) -> SizeMap:
        return self._picture_sizes

    @property
    def negotiation(self) -> Optional[Negotiation]:
        return self._negotiation

    def start(self) -> None:
        """
        Open the camera, rescan its capabilities and start the preview.

        Raises:
            CameraNotAvailableError: If the camera cannot be opened
            NoSupportedConfigurationError: If the camera has no usable ratio
        """
        with self._lock:
            if self._state is not CameraState.CLOSED:
                logger.debug("Camera already open, skipping start")
                return

            self._state = CameraState.OPENING
            logger.info(f"Opening {self._facing.value}-facing camera...")

            try:
                self._source.open(self._facing)
                self._rebuild_size_maps()
                self._state = CameraState.OPEN
                if self._requested_ratio is None:
                    self._requested_ratio = self._default_ratio
                self.adjust_camera_parameters()
                self._source.set_display_rotation(self.display_rotation)
                self._source.start_preview()
                self._showing_preview = True
            except CameraError:
                self._close_source()
                raise
            except Exception as e:
                self._close_source()
                raise CameraNotAvailableError(f"Failed to open camera: {e}") from e

            logger.info("Camera opened")

    def stop(self) -> None:
        """Stop the preview and release the camera."""
        with self._lock:
            if self._state is CameraState.CLOSED:
                return
            if self._showing_preview:
                try:
                    self._source.stop_preview()
                except Exception as e:
                    logger.error(f"Error stopping preview: {e}")
            self._close_source()
            logger.info("Camera closed")

    def _close_source(self) -> None:
        self._showing_preview = False
        self._negotiation = None
        self._focus_mode = None
        try:
            self._source.close()
        finally:
            self._state = CameraState.CLOSED

    def _rebuild_size_maps(self) -> None:
        self._preview_sizes.clear()
        for width, height in self._source.preview_sizes():
            self._preview_sizes.add(Size(width, height))
        logger.info(f"Preview sizes: {self._preview_sizes}")

        self._picture_sizes.clear()
        for width, height in self._source.picture_sizes():
            self._picture_sizes.add(Size(width, height))
        logger.info(f"Picture sizes: {self._picture_sizes}")

    # ---------- Negotiation ----------

    @property
    def display_rotation(self) -> int:
        return display_rotation(
            self._source.facing.is_front,
            self._source.sensor_orientation,
            self._display_orientation,
        )

    @property
    def capture_rotation(self) -> int:
        return capture_rotation(
            self._source.facing.is_front,
            self._source.sensor_orientation,
            self._display_orientation,
        )

    def adjust_camera_parameters(self) -> Negotiation:
        """
        Renegotiate from the requested ratio and push the result to the camera.

        Returns:
            Negotiation: Effective ratio with the applied preview/picture sizes

        Raises:
            CameraNotAvailableError: If the camera is not open
            NoSupportedConfigurationError: If no ratio is mutually supported
            ConfigurationError: If the hardware rejects the parameters
        """
        with self._lock:
            if not self.is_open():
                raise CameraNotAvailableError("Camera not open")

            self._state = CameraState.ADJUSTING
            try:
                result = negotiate(
                    self._requested_ratio or self._default_ratio,
                    self._preview_sizes,
                    self._picture_sizes,
                    surface=self._surface,
                    display_orientation=self._display_orientation,
                )
                self._focus_mode = choose_focus_mode(
                    self._source.supported_focus_modes(), self._auto_focus
                )
                self._flash = choose_flash_mode(
                    self._source.supported_flash_modes(), self._flash, self._flash
                )
                self._source.apply(CameraParameters(
                    preview_size=result.preview_size,
                    picture_size=result.picture_size,
                    capture_rotation=self.capture_rotation,
                    display_rotation=self.display_rotation,
                    focus_mode=self._focus_mode,
                    flash_mode=self._flash,
                ))
                self._negotiation = result
            finally:
                self._state = CameraState.OPEN

            logger.debug(
                f"adjust_camera_parameters: ratio={result.ratio}, "
                f"preview={result.preview_size}, picture={result.picture_size}"
            )
            return result

    def supported_aspect_ratios(self) -> Set[AspectRatio]:
        """
        Ratios usable for both preview and picture.

        Read-only: the size maps only change when the camera is reopened.
        """
        with self._lock:
            return mutual_ratios(self._preview_sizes, self._picture_sizes)

    @property
    def aspect_ratio(self) -> Optional[AspectRatio]:
        """Effective ratio when open, otherwise the requested one."""
        if self._negotiation is not None:
            return self._negotiation.ratio
        return self._requested_ratio

    def set_aspect_ratio(self, ratio: AspectRatio) -> bool:
        """
        Request a new aspect ratio.

        Before the camera is open the ratio is only stored. While open it
        must have preview sizes; there is no fallback for explicit changes.

        Returns:
            bool: True if the request was stored or applied

        Raises:
            UnsupportedAspectRatioError: If the open camera has no preview size for it
        """
        with self._lock:
            if self._requested_ratio is None or not self.is_open():
                self._requested_ratio = ratio
                logger.info(f"Aspect ratio {ratio} stored for next open")
                return True

            if ratio == self.aspect_ratio:
                # Already in effect, possibly as a fallback; later passes start from it
                self._requested_ratio = ratio
                return False

            if self._preview_sizes.sizes(ratio) is None:
                raise UnsupportedAspectRatioError(f"{ratio} is not supported")

            self._requested_ratio = ratio
            self.adjust_camera_parameters()
            logger.info(f"Aspect ratio set to {ratio}")
            return True

    # ---------- Facing & display ----------

    @property
    def facing(self) -> Facing:
        return self._facing

    def set_facing(self, facing: Facing) -> bool:
        """
        Switch camera facing, reopening the camera if it is open.

        If the new camera cannot be opened, the previous facing is restored
        and reopened before the error is raised.

        Raises:
            CameraNotAvailableError: If no camera has the requested facing
        """
        with self._lock:
            if facing == self._facing:
                return False
            if not self.is_open():
                self._facing = facing
                logger.info(f"Facing set to {facing.value} for next open")
                return True

            previous = self._facing
            self.stop()
            self._facing = facing
            try:
                self.start()
            except CameraError:
                logger.error(f"Failed to switch to {facing.value}-facing camera, reopening {previous.value}")
                self._facing = previous
                self.start()
                raise
            logger.info(f"Facing set to {facing.value}")
            return True

    def set_surface_size(self, width: int, height: int) -> None:
        """
        Record the measured display surface and renegotiate.

        Raises:
            InvalidArgumentError: If width or height is not positive
        """
        with self._lock:
            surface = Size(width, height)
            if surface == self._surface:
                return
            self._surface = surface
            logger.debug(f"Surface size set to {surface}")
            if self.is_open():
                self.adjust_camera_parameters()

    def clear_surface(self) -> None:
        """Forget the surface size, e.g. when the preview is detached."""
        with self._lock:
            if self._surface is None:
                return
            self._surface = None
            if self.is_open():
                self.adjust_camera_parameters()

    @property
    def display_orientation(self) -> int:
        return self._display_orientation

    def set_display_orientation(self, degrees: int) -> None:
        """
        Update the screen rotation, renegotiate and re-orient the preview.

        Raises:
            InvalidArgumentError: If degrees is not 0, 90, 180 or 270
        """
        validate_orientation(degrees, "display_orientation")
        with self._lock:
            if degrees == self._display_orientation:
                return
            self._display_orientation = degrees
            if self.is_open():
                self.adjust_camera_parameters()
                self._source.set_display_rotation(self.display_rotation)
            logger.info(f"Display orientation set to {degrees}")

    # ---------- Focus & flash ----------

    @property
    def auto_focus(self) -> bool:
        """True if continuous autofocus is active (or requested, when closed)."""
        if not self.is_open():
            return self._auto_focus
        return self._focus_mode == FOCUS_MODE_CONTINUOUS_PICTURE

    def set_auto_focus(self, enabled: bool) -> None:
        with self._lock:
            if enabled == self._auto_focus:
                return
            self._auto_focus = enabled
            if self.is_open():
                self.adjust_camera_parameters()
            logger.info(f"Autofocus {'enabled' if enabled else 'disabled'}")

    @property
    def flash(self) -> str:
        return self._flash

    def set_flash(self, mode: str) -> str:
        """
        Request a flash mode.

        Returns:
            str: The flash mode in effect afterwards

        Raises:
            InvalidArgumentError: If mode is not a known flash mode
        """
        if mode not in FLASH_MODES:
            raise InvalidArgumentError(
                f"Invalid flash mode '{mode}'. Must be one of: {', '.join(FLASH_MODES)}"
            )

        with self._lock:
            if mode == self._flash:
                return self._flash
            if not self.is_open():
                self._flash = mode
                return self._flash

            chosen = choose_flash_mode(self._source.supported_flash_modes(), mode, self._flash)
            if chosen != self._flash:
                self._flash = chosen
                self.adjust_camera_parameters()
            logger.info(f"Flash mode: requested={mode}, applied={self._flash}")
            return self._flash

    # ---------- Status ----------

    def get_status(self) -> Dict[str, Any]:
        """
        Get current controller state and negotiated parameters.

        Returns:
            dict: Status fields; sizes and rotations are None while closed
        """
        with self._lock:
            is_open = self.is_open()
            negotiation = self._negotiation
            return {
                "state": self._state.value,
                "facing": self._facing.value,
                "sensor_orientation": self._source.sensor_orientation if is_open else None,
                "requested_aspect_ratio": str(self._requested_ratio or self._default_ratio),
                "aspect_ratio": str(negotiation.ratio) if negotiation else None,
                "preview_size": str(negotiation.preview_size) if negotiation else None,
                "picture_size": str(negotiation.picture_size) if negotiation else None,
                "surface_size": str(self._surface) if self._surface else None,
                "display_orientation": self._display_orientation,
                "display_rotation": self.display_rotation if is_open else None,
                "capture_rotation": self.capture_rotation if is_open else None,
                "auto_focus": self.auto_focus,
                "focus_mode": self._focus_mode,
                "flash": self._flash,
            }
