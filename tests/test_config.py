"""
Tests for configuration module.

Tests Pydantic BaseSettings configuration including validation,
environment variable support, and default values.
"""

import pytest
from pydantic import ValidationError

from cameraview_service.aspect_ratio import AspectRatio
from cameraview_service.capability_source import Facing
from cameraview_service.config import CameraConfig
from cameraview_service.size import Size


class TestCameraConfig:
    """Test cases for CameraConfig."""

    def test_default_values(self):
        """Test that default configuration values are set correctly."""
        config = CameraConfig()

        assert config.aspect_ratio == "4:3"
        assert config.facing == "back"
        assert config.display_orientation == 0
        assert config.auto_focus is True
        assert config.flash == "off"
        assert config.camera_num is None
        assert config.host == "0.0.0.0"
        assert config.port == 8000
        assert config.api_key is None
        assert config.log_level == "INFO"

    def test_environment_variable_override(self, monkeypatch):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("CAMERA_ASPECT_RATIO", "16:9")
        monkeypatch.setenv("CAMERA_FACING", "front")
        monkeypatch.setenv("CAMERA_DISPLAY_ORIENTATION", "270")
        monkeypatch.setenv("CAMERA_AUTO_FOCUS", "false")
        monkeypatch.setenv("CAMERA_CAMERA_NUM", "1")
        monkeypatch.setenv("CAMERA_PORT", "9000")
        monkeypatch.setenv("CAMERA_API_KEY", "secret-key")

        config = CameraConfig()

        assert config.aspect_ratio == "16:9"
        assert config.facing == "front"
        assert config.display_orientation == 270
        assert config.auto_focus is False
        assert config.camera_num == 1
        assert config.port == 9000
        assert config.api_key == "secret-key"

    def test_preview_candidates_from_env(self, monkeypatch):
        """Test that preview candidates can be given as a JSON list."""
        monkeypatch.setenv("CAMERA_PREVIEW_CANDIDATES", '["640x480", "1280x720"]')

        config = CameraConfig()

        assert config.preview_candidate_sizes == [Size(640, 480), Size(1280, 720)]

    def test_aspect_ratio_normalized(self):
        """Test that ratios are stored in lowest terms."""
        config = CameraConfig(aspect_ratio="8:6")

        assert config.aspect_ratio == "4:3"
        assert config.requested_aspect_ratio == AspectRatio(4, 3)

    @pytest.mark.parametrize("ratio", ["16/9", "0:1", "wide", "4:3:2"])
    def test_aspect_ratio_validation(self, ratio):
        """Test that malformed ratios are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            CameraConfig(aspect_ratio=ratio)

        assert "aspect_ratio" in str(exc_info.value)

    def test_facing_case_insensitive(self):
        """Test that facing is normalized to lowercase."""
        config = CameraConfig(facing="FRONT")

        assert config.facing == "front"

    def test_facing_matches_api_values(self):
        """Test that every facing the API accepts is also valid configuration."""
        for facing in Facing:
            assert CameraConfig(facing=facing.value).facing == facing.value

        assert CameraConfig(facing="External").facing == "external"

    def test_facing_validation(self):
        """Test that unknown facings are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            CameraConfig(facing="side")

        assert "facing" in str(exc_info.value)

    @pytest.mark.parametrize("degrees", [0, 90, 180, 270])
    def test_display_orientation_valid(self, degrees):
        """Test that right angles are accepted."""
        assert CameraConfig(display_orientation=degrees).display_orientation == degrees

    @pytest.mark.parametrize("degrees", [45, -90, 360])
    def test_display_orientation_validation(self, degrees):
        """Test that other angles are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            CameraConfig(display_orientation=degrees)

        assert "display_orientation" in str(exc_info.value)

    def test_flash_validation(self):
        """Test flash mode validation."""
        assert CameraConfig(flash="Torch").flash == "torch"

        with pytest.raises(ValidationError) as exc_info:
            CameraConfig(flash="strobe")

        assert "flash" in str(exc_info.value)

    def test_camera_num_validation(self):
        """Test that negative camera indices are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            CameraConfig(camera_num=-1)

        assert "camera_num" in str(exc_info.value)

    def test_preview_candidates_normalized(self):
        """Test that candidates are parsed and re-rendered."""
        config = CameraConfig(preview_candidates=[" 640x480", "1280X720"])

        assert config.preview_candidates == ["640x480", "1280x720"]

    def test_preview_candidates_validation(self):
        """Test that empty or malformed candidate lists are rejected."""
        with pytest.raises(ValidationError):
            CameraConfig(preview_candidates=[])

        with pytest.raises(ValidationError):
            CameraConfig(preview_candidates=["640*480"])

        with pytest.raises(ValidationError):
            CameraConfig(preview_candidates=["0x480"])

    def test_default_preview_candidates_cover_both_ratios(self):
        """Test that the defaults offer 4:3 and 16:9 preview sizes."""
        ratios = {size.aspect_ratio() for size in CameraConfig().preview_candidate_sizes}

        assert AspectRatio(4, 3) in ratios
        assert AspectRatio(16, 9) in ratios

    def test_port_validation(self):
        """Test port number validation."""
        with pytest.raises(ValidationError):
            CameraConfig(port=0)

        with pytest.raises(ValidationError):
            CameraConfig(port=70000)

        config = CameraConfig(port=8080)
        assert config.port == 8080

    def test_log_level_validation(self):
        """Test that log level is validated and normalized."""
        config = CameraConfig(log_level="debug")
        assert config.log_level == "DEBUG"

        with pytest.raises(ValidationError) as exc_info:
            CameraConfig(log_level="INVALID")

        assert "log_level" in str(exc_info.value).lower()

    def test_api_key_optional(self):
        """Test that API key is optional."""
        config = CameraConfig()
        assert config.api_key is None

        config = CameraConfig(api_key="my-secret-key")
        assert config.api_key == "my-secret-key"
