"""
Pytest configuration and fixtures for CameraView Service tests.

Provides an in-memory capability source, mocks for Picamera2 and common
test fixtures.
"""

import importlib
import sys
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from cameraview_service.capability_source import (
    FLASH_MODE_OFF,
    FOCUS_MODE_AUTO,
    FOCUS_MODE_CONTINUOUS_PICTURE,
    FOCUS_MODE_FIXED,
    Facing,
)
from cameraview_service.exceptions import CameraNotAvailableError


PREVIEW_SIZES = [
    (320, 240),
    (640, 480),
    (1280, 960),
    (640, 360),
    (1280, 720),
    (1920, 1080),
]

PICTURE_SIZES = [
    (640, 480),
    (2592, 1944),
    (1920, 1080),
    (4608, 2592),
]


class FakeCapabilitySource:
    """
    In-memory capability source.

    Each facing has its own preview/picture lists and sensor orientation so
    tests can switch cameras. Every apply() call is recorded.
    """

    def __init__(self, cameras=None, focus_modes=None, flash_modes=None):
        if cameras is None:
            cameras = {
                Facing.BACK: (PREVIEW_SIZES, PICTURE_SIZES, 90),
                Facing.FRONT: ([(640, 480), (1280, 720)], [(1280, 720), (2560, 1440)], 270),
            }
        self.cameras = cameras
        self.focus_modes = (
            focus_modes
            if focus_modes is not None
            else [FOCUS_MODE_CONTINUOUS_PICTURE, FOCUS_MODE_AUTO, FOCUS_MODE_FIXED]
        )
        self.flash_modes = flash_modes if flash_modes is not None else [FLASH_MODE_OFF, "on", "auto"]
        self.applied = []
        self.display_rotations = []
        self.open_count = 0
        self.close_count = 0
        self.previewing = False
        self._facing = Facing.BACK
        self._open = False

    @property
    def is_open(self):
        return self._open

    @property
    def facing(self):
        return self._facing

    @property
    def sensor_orientation(self):
        return self.cameras[self._facing][2]

    def open(self, facing):
        if facing not in self.cameras:
            raise CameraNotAvailableError(f"No {facing.value}-facing camera detected")
        self._facing = facing
        self._open = True
        self.open_count += 1

    def close(self):
        if self._open:
            self.close_count += 1
        self._open = False
        self.previewing = False

    def preview_sizes(self):
        return list(self.cameras[self._facing][0])

    def picture_sizes(self):
        return list(self.cameras[self._facing][1])

    def supported_focus_modes(self):
        return list(self.focus_modes)

    def supported_flash_modes(self):
        return self.flash_modes

    def apply(self, parameters):
        self.applied.append(parameters)

    def set_display_rotation(self, degrees):
        self.display_rotations.append(degrees)

    def start_preview(self):
        self.previewing = True

    def stop_preview(self):
        self.previewing = False

    @property
    def last_applied(self):
        return self.applied[-1] if self.applied else None


@pytest.fixture
def fake_source():
    """In-memory capability source with a back and a front camera."""
    return FakeCapabilitySource()


@pytest.fixture
def camera_controller(fake_source):
    """
    Create a started CameraController backed by the fake source.

    Returns:
        CameraController: Controller instance for testing
    """
    from cameraview_service.camera_controller import CameraController

    controller = CameraController(fake_source)
    controller.start()
    return controller


@pytest.fixture
def mock_picamera2():
    """
    Mock Picamera2 instance for testing.

    Returns a mock object that simulates Picamera2 behavior without
    requiring actual camera hardware.
    """
    mock = MagicMock()
    mock.started = False
    mock.camera_properties = {
        "Model": "imx708",
        "Location": 1,
        "Rotation": 180,
        "PixelArraySize": (4608, 2592),
    }
    mock.sensor_modes = [
        {"size": (1536, 864), "format": "SRGGB10_CSI2P", "bit_depth": 10},
        {"size": (2304, 1296), "format": "SRGGB10_CSI2P", "bit_depth": 10},
        {"size": (4608, 2592), "format": "SRGGB10_CSI2P", "bit_depth": 10},
    ]
    mock.camera_controls = {
        "AfMode": (0, 2, 0),
        "LensPosition": (0.0, 32.0, 1.0),
        "ExposureTime": (9, 77193582, 20000),
    }
    mock.create_preview_configuration.return_value = {"main": {"size": (640, 360)}}
    mock.create_still_configuration.return_value = {"main": {"size": (4608, 2592)}}
    return mock


@pytest.fixture
def mock_picamera2_class(mock_picamera2):
    """Mock Picamera2 class returning mock_picamera2 on construction."""
    cls = MagicMock(return_value=mock_picamera2)
    cls.global_camera_info.return_value = [
        {"Model": "imx708", "Location": 1, "Rotation": 180, "Num": 0},
    ]
    return cls


@pytest.fixture
def picamera_source_module(mock_picamera2_class):
    """
    Import cameraview_service.picamera_source against a mocked picamera2 package.

    The module is dropped from sys.modules afterwards so the mock does not leak.
    """
    with patch.dict(sys.modules, {"picamera2": MagicMock(Picamera2=mock_picamera2_class)}):
        sys.modules.pop("cameraview_service.picamera_source", None)
        module = importlib.import_module("cameraview_service.picamera_source")
        yield module


@pytest.fixture
def client_no_auth(monkeypatch, fake_source):
    """
    Create a FastAPI test client without authentication.

    Returns:
        TestClient: Test client with authentication disabled
    """
    import cameraview_service.api as api

    monkeypatch.setattr(api.CONFIG, "api_key", None)
    monkeypatch.setattr(api, "create_capability_source", lambda: fake_source)

    with TestClient(api.app) as client:
        yield client


@pytest.fixture
def client_with_auth(monkeypatch, fake_source, test_config):
    """
    Create a FastAPI test client with authentication enabled.

    Returns:
        TestClient: Test client with authentication enabled
    """
    import cameraview_service.api as api

    monkeypatch.setattr(api.CONFIG, "api_key", test_config["api_key"])
    monkeypatch.setattr(api, "create_capability_source", lambda: fake_source)

    with TestClient(api.app) as client:
        yield client


@pytest.fixture
def test_config():
    """
    Provide test configuration values.

    Returns:
        dict: Test configuration
    """
    return {
        "aspect_ratio": "16:9",
        "facing": "front",
        "display_orientation": 90,
        "api_key": "test-api-key-12345",
        "log_level": "DEBUG",
    }


@pytest.fixture
def auth_headers(test_config):
    """
    Provide authentication headers for API requests.

    Returns:
        dict: Headers with API key
    """
    return {"X-API-Key": test_config["api_key"]}


@pytest.fixture(autouse=True)
def reset_logging():
    """
    Reset logging configuration between tests.

    This prevents log level changes from affecting other tests.
    """
    import logging

    original_level = logging.root.level

    yield

    logging.root.setLevel(original_level)
