"""
Unit tests for config.settings module.
"""
import pytest
from pydantic import ValidationError
from config.settings import Settings


class TestSettings:
    """Tests for Settings loading."""

    def test_defaults(self):
        s = Settings(_env_file=None)

        assert s.database_url.startswith("sqlite:///")
        assert s.detect_brightness_threshold == 235
        assert s.default_fit_mode == "crop-fill"
        assert s.history_limit == 0

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DETECT_BRIGHTNESS_THRESHOLD", "200")
        monkeypatch.setenv("brush_color", "#00FF00")

        s = Settings(_env_file=None)

        assert s.detect_brightness_threshold == 200
        assert s.brush_color == "#00FF00"

    def test_threshold_bounds(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, detect_brightness_threshold=300)

    def test_detection_defaults_keys(self):
        defaults = Settings(_env_file=None).get_detection_defaults()

        assert defaults['brightness_threshold'] == 235
        assert defaults['tolerant_cell_size'] == 15
        assert 'tolerance' not in defaults

    def test_brush_defaults(self):
        defaults = Settings(_env_file=None, text_size=30).get_brush_defaults()

        assert defaults['text_size'] == 30
        assert defaults['eraser_size'] == 20
