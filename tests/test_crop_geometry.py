"""
Tests for centered crop window computation.
"""

import pytest

from clip_sequencer.crop_geometry import CropWindow, compute_crop


class TestComputeCrop:

    def test_landscape_1080p_to_vertical(self):
        window = compute_crop(1920, 1080, 9 / 16)
        assert (window.width, window.height, window.x_offset, window.y_offset) == (608, 1080, 656, 0)
        assert window.to_filter() == "crop=608:1080:656:0"
        assert window.aspect_ratio == pytest.approx(9 / 16, rel=1e-3)

    def test_tall_source_crops_vertically(self):
        window = compute_crop(1080, 2400, 9 / 16)
        assert window.width == 1080
        assert window.height == 1920
        assert window.x_offset == 0
        assert window.y_offset == 240

    def test_exact_aspect_is_identity(self):
        window = compute_crop(1080, 1920, 9 / 16)
        assert (window.width, window.height, window.x_offset, window.y_offset) == (1080, 1920, 0, 0)

    def test_square_target(self):
        window = compute_crop(1280, 720, 1.0)
        assert (window.width, window.height, window.x_offset, window.y_offset) == (720, 720, 280, 0)

    def test_rejects_non_positive_input(self):
        for width, height, aspect in [(0, 1080, 0.5), (1920, -1, 0.5), (1920, 1080, 0)]:
            with pytest.raises(ValueError):
                compute_crop(width, height, aspect)

    def test_window_always_fits_inside_source(self):
        """Sweep a grid of source sizes and targets."""
        targets = [9 / 16, 4 / 5, 1.0, 16 / 9, 2.39]
        for width in range(1, 400, 7):
            for height in range(1, 400, 11):
                for target in targets:
                    w = compute_crop(width, height, target)
                    assert w.x_offset >= 0 and w.y_offset >= 0
                    assert w.x_offset + w.width <= width
                    assert w.y_offset + w.height <= height
                    assert w.width >= 1 and w.height >= 1

    def test_full_dimension_is_kept_on_one_axis(self):
        for width, height in [(1920, 1080), (720, 1280), (3840, 2160), (640, 480), (1000, 3000)]:
            w = compute_crop(width, height, 9 / 16)
            assert w.width == width or w.height == height

    def test_window_is_centered(self):
        for width, height in [(1920, 1080), (1280, 720), (1000, 999), (1080, 2400)]:
            w = compute_crop(width, height, 9 / 16)
            left, right = w.x_offset, width - w.width - w.x_offset
            top, bottom = w.y_offset, height - w.height - w.y_offset
            assert abs(left - right) <= 1
            assert abs(top - bottom) <= 1

    def test_window_is_immutable(self):
        w = compute_crop(1920, 1080, 9 / 16)
        assert isinstance(w, CropWindow)
        with pytest.raises(Exception):
            w.width = 10
        assert w.to_dict()["source_width"] == 1920
