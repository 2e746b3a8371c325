"""
Custom exceptions for the CameraView Service.

This module defines all custom exceptions used throughout the application
for better error handling and categorization.
"""

from __future__ import annotations


class CameraError(Exception):
    """
    Base exception for all camera-related errors.

    This is the parent class for all camera service exceptions,
    allowing for broad exception handling when needed.
    """
    pass


class InvalidArgumentError(CameraError, ValueError):
    """
    Raised when a malformed ratio, size or orientation is supplied.

    This includes:
    - Non-positive width/height or ratio components
    - Ratio strings that are not of the form "x:y"
    - Orientation values other than 0, 90, 180 or 270 degrees

    These are caller bugs and are never retried.
    """
    pass


class UnsupportedAspectRatioError(CameraError):
    """
    Raised when an aspect ratio change is explicitly requested while the
    camera is open and the ratio has no preview sizes.

    No automatic fallback is applied in this case.
    """
    pass


class NoSupportedConfigurationError(CameraError):
    """
    Raised when no aspect ratio is supported by both the preview and the
    picture capability sets.

    There is no valid camera configuration to apply, so this must be
    surfaced all the way to the caller.
    """
    pass


class CameraNotAvailableError(CameraError):
    """
    Raised when the camera hardware is not available or cannot be opened.

    This typically occurs when:
    - No camera is physically connected
    - No camera matches the requested facing
    - Camera is already in use by another process
    """
    pass


class ConfigurationError(CameraError):
    """
    Raised when applying negotiated parameters to the hardware fails.
    """
    pass
