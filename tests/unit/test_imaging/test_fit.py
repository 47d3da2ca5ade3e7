"""
Unit tests for imaging.fit module.
"""
import pytest
from core.constants import FitMode
from core.models import BlankArea, SourceCrop
from imaging.fit import crop_fill_source, fit, letterbox_dest, render_placement


class TestCropFill:
    """Tests for crop-fill placement."""

    def test_wide_source_square_cell(self):
        """Test 16:9 source into a square cell keeps the centre 900x900."""
        crop = crop_fill_source(1600, 900, BlankArea(0, 0, 100, 100))

        assert crop == SourceCrop(350.0, 0.0, 900.0, 900.0)

    def test_tall_source_wide_cell(self):
        crop = crop_fill_source(900, 1600, BlankArea(0, 0, 100, 50))

        assert crop.x == 0.0
        assert crop.width == 900.0
        assert crop.height == pytest.approx(450.0)
        assert crop.y == pytest.approx(575.0)

    def test_same_aspect_uses_whole_source(self):
        crop = crop_fill_source(200, 100, BlankArea(0, 0, 100, 50))

        assert crop == SourceCrop(0.0, 0.0, 200.0, 100.0)

    def test_crop_matches_destination_aspect(self):
        dest = BlankArea(5, 5, 73, 31)
        crop = crop_fill_source(640, 480, dest)

        assert crop.aspect_ratio == pytest.approx(73 / 31)
        assert crop.x >= 0 and crop.y >= 0
        assert crop.x + crop.width <= 640 + 1e-9
        assert crop.y + crop.height <= 480 + 1e-9

    def test_fit_fills_destination(self):
        dest = BlankArea(10, 20, 100, 100)
        transform = fit(1600, 900, dest, FitMode.CROP_FILL)

        assert transform.dest_rect == dest


class TestLetterbox:
    """Tests for letterbox placement."""

    def test_wide_source_centred_vertically(self):
        dest = letterbox_dest(1600, 900, BlankArea(10, 20, 100, 100))

        assert dest == BlankArea(10, 42, 100, 56)

    def test_tall_source_centred_horizontally(self):
        dest = letterbox_dest(900, 1600, BlankArea(0, 0, 100, 100))

        assert dest == BlankArea(22, 0, 56, 100)

    def test_extreme_aspect_keeps_one_pixel(self):
        dest = letterbox_dest(1000, 1, BlankArea(0, 0, 10, 10))

        assert dest == BlankArea(0, 4, 10, 1)

    def test_fit_uses_full_source(self):
        transform = fit(1600, 900, BlankArea(0, 0, 100, 100), "letterbox")

        assert transform.source_crop == SourceCrop(0.0, 0.0, 1600.0, 900.0)
        assert transform.dest_rect.width == 100
        assert transform.dest_rect.height == 56


class TestFitValidation:
    def test_zero_source(self):
        with pytest.raises(ValueError):
            fit(0, 10, BlankArea(0, 0, 10, 10))

    def test_empty_destination(self):
        with pytest.raises(ValueError):
            fit(10, 10, BlankArea(0, 0, 0, 10))

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            fit(10, 10, BlankArea(0, 0, 10, 10), "stretch")


class TestRenderPlacement:
    def test_renders_destination_size(self, wide_photo):
        transform = fit(1600, 900, BlankArea(0, 0, 100, 100), FitMode.CROP_FILL)

        patch = render_placement(wide_photo, transform)

        assert patch.size == (100, 100)
        assert patch.mode == 'RGBA'
        # Red side bands are cropped away
        r, g, b, a = patch.getpixel((50, 50))
        assert r <= 1 and abs(g - 128) <= 1 and b <= 1
        assert patch.getpixel((5, 50))[0] < 50
