"""Tests for gifweave.palette module."""

import numpy as np
import pytest

from conftest import frame_from_pixels, gradient_frame, solid_frame
from gifweave.alpha import normalize_alpha
from gifweave.error_handling import ValidationError
from gifweave.palette import apply_palette, find_transparent_index, nearest_color_index
from gifweave.quantize import quantize


class TestFindTransparentIndex:
    """Tests for find_transparent_index function."""

    @pytest.mark.fast
    def test_first_transparent_entry(self):
        palette = [(255, 0, 0, 255), (0, 0, 0, 0), (1, 1, 1, 0)]
        assert find_transparent_index(palette) == 1

    @pytest.mark.fast
    def test_none_when_absent(self):
        assert find_transparent_index([(255, 0, 0, 255), (0, 0, 0, 128)]) is None

    @pytest.mark.fast
    def test_rgb_palette_has_no_transparency(self):
        assert find_transparent_index([(0, 0, 0), (255, 255, 255)]) is None

    @pytest.mark.fast
    def test_empty_palette(self):
        assert find_transparent_index([]) is None


class TestApplyPalette:
    """Tests for apply_palette function."""

    @pytest.mark.fast
    def test_uniform_red_maps_to_zero(self):
        pixels = normalize_alpha(solid_frame(2, 2, (255, 0, 0, 255)), 128)
        palette = quantize(pixels, 2)
        indices = apply_palette(pixels, palette)
        assert indices.tolist() == [0, 0, 0, 0]
        assert indices.dtype == np.uint8

    @pytest.mark.fast
    def test_nearest_color(self):
        palette = [(0, 0, 0), (255, 255, 255), (255, 0, 0)]
        pixels = frame_from_pixels([(10, 10, 10, 255), (240, 250, 245, 255), (200, 30, 20, 255)])
        assert apply_palette(pixels, palette).tolist() == [0, 1, 2]

    @pytest.mark.fast
    def test_tie_goes_to_lowest_index(self):
        palette = [(0, 0, 0), (20, 0, 0), (10, 0, 0)]
        # (5,0,0) ties entries 0 and 2, (15,0,0) ties entries 1 and 2
        pixels = frame_from_pixels([(5, 0, 0, 255), (15, 0, 0, 255)])
        assert apply_palette(pixels, palette).tolist() == [0, 1]

    @pytest.mark.fast
    def test_entries_sharing_a_cell_stay_distinct(self):
        """Distances use full channel precision, not format cells."""
        palette = [(8, 0, 0), (15, 0, 0)]
        pixels = frame_from_pixels([(9, 0, 0, 255), (14, 1, 2, 255)])
        assert apply_palette(pixels, palette, color_format="rgb565").tolist() == [0, 1]

    @pytest.mark.fast
    def test_refined_palette_entries_are_reachable(self):
        pixels = frame_from_pixels([(i % 256, i // 256, 0, 255) for i in range(300)])
        palette = quantize(pixels, 256, color_format="rgb444")
        indices = apply_palette(pixels, palette, color_format="rgb444")
        assert len(set(indices.tolist())) > 16

    @pytest.mark.fast
    def test_one_bit_alpha_snaps_pixel_alpha(self):
        palette = [(255, 0, 0, 255), (255, 0, 0, 160)]
        pixels = frame_from_pixels([(255, 0, 0, 200)])
        assert apply_palette(pixels, palette, color_format="rgba4444").tolist() == [1]
        snapped = apply_palette(pixels, palette, color_format="rgba4444", one_bit_alpha=True)
        assert snapped.tolist() == [0]

    @pytest.mark.fast
    def test_one_bit_alpha_routes_faint_pixels_to_transparent(self):
        palette = [(0, 0, 0, 0), (255, 0, 0, 255)]
        pixels = frame_from_pixels([(255, 0, 0, 100), (255, 0, 0, 200)])
        assert apply_palette(pixels, palette, color_format="rgba4444").tolist() == [1, 1]
        snapped = apply_palette(pixels, palette, color_format="rgba4444", one_bit_alpha=True)
        assert snapped.tolist() == [0, 1]

    @pytest.mark.fast
    def test_one_bit_alpha_ignored_for_rgb_formats(self):
        palette = [(0, 0, 0, 0), (255, 0, 0)]
        pixels = frame_from_pixels([(255, 0, 0, 100)])
        assert apply_palette(pixels, palette, one_bit_alpha=True).tolist() == [1]

    @pytest.mark.fast
    def test_transparent_pixels_use_reserved_entry(self):
        """Transparent black never matches opaque black and the other way round."""
        palette = [(0, 0, 0, 0), (0, 0, 0, 255), (255, 255, 255, 255)]
        pixels = frame_from_pixels([(0, 0, 0, 0), (0, 0, 0, 255), (3, 3, 3, 255)])
        indices = apply_palette(pixels, palette, color_format="rgb565")
        assert indices.tolist() == [0, 1, 1]

    @pytest.mark.fast
    def test_opaque_pixels_skip_transparent_entry(self):
        palette = [(255, 255, 255, 255), (0, 0, 0, 0)]
        pixels = frame_from_pixels([(1, 1, 1, 255)])
        assert apply_palette(pixels, palette, color_format="rgba4444").tolist() == [0]

    @pytest.mark.fast
    def test_only_transparent_entry(self):
        """With nothing else available, opaque pixels fall back to the only entry."""
        palette = [(0, 0, 0, 0)]
        pixels = frame_from_pixels([(0, 0, 0, 0), (255, 255, 255, 255)])
        assert apply_palette(pixels, palette, color_format="rgba4444").tolist() == [0, 0]

    @pytest.mark.fast
    def test_clear_alpha_threshold_routes_to_transparent(self):
        palette = [(0, 0, 0, 0), (200, 200, 200, 255)]
        pixels = frame_from_pixels([(200, 200, 200, 30), (200, 200, 200, 255)])
        indices = apply_palette(
            pixels, palette, color_format="rgba4444", clear_alpha_threshold=64
        )
        assert indices.tolist() == [0, 1]

    @pytest.mark.fast
    def test_transparent_property_on_random_frames(self):
        """Every alpha-0 pixel maps to the transparent index when one exists."""
        rng = np.random.default_rng(3)
        for _ in range(5):
            pixels = normalize_alpha(rng.integers(0, 256, size=24 * 24 * 4, dtype=np.uint8), 128)
            palette = quantize(pixels, 16, color_format="rgba4444")
            transparent_index = find_transparent_index(palette)
            indices = apply_palette(pixels, palette, color_format="rgba4444")
            alpha = pixels.reshape(-1, 4)[:, 3]
            assert transparent_index is not None
            assert np.all(indices[alpha == 0] == transparent_index)
            assert not np.any(indices[alpha == 255] == transparent_index)

    @pytest.mark.fast
    def test_indices_stay_within_palette(self):
        pixels = normalize_alpha(gradient_frame(50, 20), 128)
        palette = quantize(pixels, 10)
        indices = apply_palette(pixels, palette)
        assert indices.size == 50 * 20
        assert int(indices.max()) < len(palette)

    @pytest.mark.fast
    def test_empty_pixels(self):
        assert apply_palette(b"", [(0, 0, 0)]).size == 0

    @pytest.mark.fast
    def test_empty_palette_rejected(self):
        with pytest.raises(ValidationError, match="empty palette"):
            apply_palette(solid_frame(1, 1, (1, 2, 3, 255)), [])

    @pytest.mark.fast
    def test_oversized_palette_rejected(self):
        palette = [(i % 256, i // 256, 0) for i in range(257)]
        with pytest.raises(ValidationError, match="at most 256"):
            apply_palette(solid_frame(1, 1, (1, 2, 3, 255)), palette)

    @pytest.mark.fast
    def test_bad_color_rejected(self):
        with pytest.raises(ValidationError, match="3 or 4 channels"):
            apply_palette(solid_frame(1, 1, (1, 2, 3, 255)), [(1, 2)])


class TestNearestColorIndex:
    """Tests for nearest_color_index function."""

    @pytest.mark.fast
    def test_rgb_query(self):
        palette = [(0, 0, 0), (250, 250, 250)]
        assert nearest_color_index((200, 210, 220), palette) == 1

    @pytest.mark.fast
    def test_rgba_query(self):
        palette = [(0, 0, 0, 0), (10, 10, 10, 255)]
        assert nearest_color_index((0, 0, 0, 0), palette, "rgba4444") == 0
        assert nearest_color_index((0, 0, 0), palette, "rgba4444") == 1
