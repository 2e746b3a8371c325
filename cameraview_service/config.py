"""
Configuration management for CameraView Service.

Uses Pydantic BaseSettings for type-safe configuration with environment variable support.
All settings can be overridden via environment variables with the CAMERA_ prefix.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cameraview_service.aspect_ratio import AspectRatio
from cameraview_service.capability_source import Facing
from cameraview_service.exceptions import InvalidArgumentError
from cameraview_service.size import Size

FACINGS = tuple(facing.value for facing in Facing)
FLASH_MODES = ("off", "on", "torch", "auto", "red-eye")


class CameraConfig(BaseSettings):
    """
    Camera negotiation and API configuration.

    All settings can be overridden via environment variables:
    - CAMERA_ASPECT_RATIO: Requested aspect ratio ("4:3", "16:9", ...)
    - CAMERA_FACING: Camera facing to open (back, front, external)
    - CAMERA_DISPLAY_ORIENTATION: Initial screen rotation (0, 90, 180, 270)
    - CAMERA_AUTO_FOCUS: Enable continuous autofocus (true/false)
    - CAMERA_FLASH: Flash mode (off, on, torch, auto, red-eye)
    - CAMERA_CAMERA_NUM: Force a camera index instead of matching facing
    - CAMERA_PREVIEW_CANDIDATES: JSON list of "WxH" preview sizes to offer
    - CAMERA_API_KEY: API key for authentication (optional, disables auth if not set)
    - CAMERA_HOST: API server host
    - CAMERA_PORT: API server port
    - CAMERA_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    model_config = SettingsConfigDict(
        env_prefix="CAMERA_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Negotiation defaults
    aspect_ratio: str = Field(
        default="4:3",
        description="Requested aspect ratio",
    )
    facing: str = Field(
        default="back",
        description="Camera facing to open on startup",
    )
    display_orientation: int = Field(
        default=0,
        description="Initial screen rotation in degrees",
    )
    auto_focus: bool = Field(
        default=True,
        description="Enable continuous autofocus when supported",
    )
    flash: str = Field(
        default="off",
        description="Flash mode",
    )

    # Hardware selection
    camera_num: int | None = Field(
        default=None,
        description="Camera index (matched by facing if None)",
        ge=0,
    )
    preview_candidates: list[str] = Field(
        default=[
            "320x240",
            "640x480",
            "800x600",
            "1024x768",
            "1280x960",
            "1640x1232",
            "640x360",
            "1280x720",
            "1920x1080",
            "2304x1296",
        ],
        description="Preview sizes offered, bounded by the sensor pixel array",
    )

    # API server configuration
    host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    port: int = Field(
        default=8000,
        description="API server port",
        ge=1,
        le=65535,
    )

    # Security
    api_key: str | None = Field(
        default=None,
        description="API key for authentication (if not set, authentication is disabled)",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper

    @field_validator("aspect_ratio")
    @classmethod
    def validate_aspect_ratio(cls, v: str) -> str:
        """Validate and normalize the ratio to lowest terms."""
        try:
            return str(AspectRatio.parse(v))
        except InvalidArgumentError as e:
            raise ValueError(str(e)) from e

    @field_validator("facing")
    @classmethod
    def validate_facing(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in FACINGS:
            raise ValueError(f"Facing must be one of {FACINGS}")
        return v_lower

    @field_validator("display_orientation")
    @classmethod
    def validate_display_orientation(cls, v: int) -> int:
        if v not in (0, 90, 180, 270):
            raise ValueError("Display orientation must be 0, 90, 180 or 270")
        return v

    @field_validator("flash")
    @classmethod
    def validate_flash(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in FLASH_MODES:
            raise ValueError(f"Flash mode must be one of {FLASH_MODES}")
        return v_lower

    @field_validator("preview_candidates")
    @classmethod
    def validate_preview_candidates(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one preview candidate is required")
        try:
            return [str(Size.parse(item)) for item in v]
        except InvalidArgumentError as e:
            raise ValueError(str(e)) from e

    @property
    def requested_aspect_ratio(self) -> AspectRatio:
        return AspectRatio.parse(self.aspect_ratio)

    @property
    def preview_candidate_sizes(self) -> list[Size]:
        return [Size.parse(item) for item in self.preview_candidates]


# Global configuration instance
CONFIG = CameraConfig()
