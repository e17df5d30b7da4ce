"""Tests for the preview module.

This module tests the preview/display and preview/export functionality including:
- The ImageBuffer sink
- Tone mapping functions (Reinhard, exposure)
- Gamma correction
- PNG export
- RMSE computation

Note: Tests avoid displaying actual windows by not calling show_preview
in automated tests. The processing functions are tested directly.
"""

import os
import tempfile

import numpy as np
import pytest
from PIL import Image as PILImage


class TestImageBuffer:
    """Test the in-memory image sink."""

    def test_new_buffer_is_black(self):
        """Test a new buffer has the given size and black pixels."""
        from src.facet.preview.export import ImageBuffer

        buffer = ImageBuffer(4, 3)

        assert buffer.width == 4
        assert buffer.height == 3
        assert buffer.to_numpy().shape == (3, 4, 3)
        assert np.all(buffer.to_numpy() == 0.0)

    def test_set_and_get_pixel(self):
        """Test pixels are stored row-major with y growing downward."""
        from src.facet.preview.export import ImageBuffer

        buffer = ImageBuffer(4, 3)
        buffer.set_pixel(3, 1, (0.25, 0.5, 2.0))

        assert buffer.get_pixel(3, 1) == (0.25, 0.5, 2.0)
        assert np.allclose(buffer.to_numpy()[1, 3], [0.25, 0.5, 2.0])

    def test_to_numpy_returns_copy(self):
        """Test modifying the exported array leaves the buffer unchanged."""
        from src.facet.preview.export import ImageBuffer

        buffer = ImageBuffer(2, 2)
        pixels = buffer.to_numpy()
        pixels[0, 0] = 1.0

        assert buffer.get_pixel(0, 0) == (0.0, 0.0, 0.0)

    @pytest.mark.parametrize("x, y", [(-1, 0), (4, 0), (0, 3), (0, -1)])
    def test_out_of_bounds_pixel(self, x, y):
        """Test pixel access outside the image raises IndexError."""
        from src.facet.preview.export import ImageBuffer

        buffer = ImageBuffer(4, 3)
        with pytest.raises(IndexError):
            buffer.set_pixel(x, y, (1.0, 1.0, 1.0))
        with pytest.raises(IndexError):
            buffer.get_pixel(x, y)

    def test_invalid_dimensions(self):
        """Test non-positive dimensions raise ValueError."""
        from src.facet.preview.export import ImageBuffer

        with pytest.raises(ValueError):
            ImageBuffer(0, 10)

    def test_repr(self):
        """Test the repr shows the size."""
        from src.facet.preview.export import ImageBuffer

        assert repr(ImageBuffer(8, 6)) == "ImageBuffer(width=8, height=6)"


class TestToneMapReinhard:
    """Test Reinhard tone mapping."""

    def test_reinhard_preserves_black(self):
        """Test that Reinhard preserves black (0 -> 0)."""
        from src.facet.preview.display import tone_map_reinhard

        image = np.zeros((10, 10, 3), dtype=np.float32)
        result = tone_map_reinhard(image)

        assert np.allclose(result, 0.0)

    def test_reinhard_compresses_bright_values(self):
        """Test that Reinhard compresses bright values from several lights."""
        from src.facet.preview.display import tone_map_reinhard

        image = np.full((10, 10, 3), 10.0, dtype=np.float32)
        result = tone_map_reinhard(image)

        # 10 / (1 + 10) = 10/11 ~ 0.909
        assert np.allclose(result, 10.0 / 11.0, atol=1e-5)

    def test_reinhard_handles_negative_input(self):
        """Test that Reinhard clamps negative values to zero."""
        from src.facet.preview.display import tone_map_reinhard

        image = np.full((4, 4, 3), -1.0, dtype=np.float32)
        result = tone_map_reinhard(image)

        assert np.allclose(result, 0.0)


class TestToneMapExposure:
    """Test exposure tone mapping."""

    def test_exposure_formula(self):
        """Test 1 - exp(-c * exposure)."""
        from src.facet.preview.display import tone_map_exposure

        image = np.full((2, 2, 3), 0.5, dtype=np.float32)
        result = tone_map_exposure(image, exposure=2.0)

        assert np.allclose(result, 1.0 - np.exp(-1.0), atol=1e-6)

    def test_exposure_higher_value_brighter(self):
        """Test that higher exposure produces a brighter image."""
        from src.facet.preview.display import tone_map_exposure

        image = np.full((2, 2, 3), 0.5, dtype=np.float32)

        assert np.all(tone_map_exposure(image, 2.0) > tone_map_exposure(image, 0.5))

    @pytest.mark.parametrize("exposure", [0.0, -1.0])
    def test_exposure_must_be_positive(self, exposure):
        """Test a non-positive exposure raises ValueError."""
        from src.facet.preview.display import tone_map_exposure

        with pytest.raises(ValueError):
            tone_map_exposure(np.zeros((2, 2, 3), dtype=np.float32), exposure)


class TestApplyGamma:
    """Test gamma correction."""

    def test_gamma_1_no_change(self):
        """Test that gamma=1.0 returns the input unchanged."""
        from src.facet.preview.display import apply_gamma

        image = np.random.default_rng(0).random((5, 5, 3)).astype(np.float32)
        result = apply_gamma(image, gamma=1.0)

        assert np.array_equal(result, image)

    def test_gamma_brightens_midtones(self):
        """Test that gamma 2.2 encoding brightens midtones."""
        from src.facet.preview.display import apply_gamma

        image = np.full((2, 2, 3), 0.5, dtype=np.float32)
        result = apply_gamma(image, gamma=2.2)

        assert np.allclose(result, 0.5 ** (1.0 / 2.2), atol=1e-6)

    def test_gamma_clips_out_of_range(self):
        """Test values outside [0, 1] are clipped before encoding."""
        from src.facet.preview.display import apply_gamma

        image = np.array([[[-0.5, 0.0, 3.0]]], dtype=np.float32)
        result = apply_gamma(image, gamma=2.2)

        assert np.allclose(result, [[[0.0, 0.0, 1.0]]])

    def test_gamma_must_be_positive(self):
        """Test a non-positive gamma raises ValueError."""
        from src.facet.preview.display import apply_gamma

        with pytest.raises(ValueError):
            apply_gamma(np.zeros((1, 1, 3), dtype=np.float32), gamma=0.0)


class TestProcessImageForDisplay:
    """Test the full display pipeline."""

    @pytest.mark.parametrize("tone_map", ["none", "reinhard", "exposure"])
    def test_process_output_always_valid(self, tone_map):
        """Test the output is float32 in [0, 1] for any tone map."""
        from src.facet.preview.display import process_image_for_display

        image = np.linspace(-1.0, 20.0, 48, dtype=np.float32).reshape(4, 4, 3)
        result = process_image_for_display(image, tone_map=tone_map)

        assert result.dtype == np.float32
        assert np.all(result >= 0.0)
        assert np.all(result <= 1.0)

    def test_process_with_no_tone_map_clips(self):
        """Test that without tone mapping bright values clip to white."""
        from src.facet.preview.display import process_image_for_display

        image = np.full((2, 2, 3), 4.0, dtype=np.float32)
        result = process_image_for_display(image, tone_map="none", gamma=1.0)

        assert np.allclose(result, 1.0)

    def test_process_invalid_tone_map_raises(self):
        """Test that an unknown tone map method raises ValueError."""
        from src.facet.preview.display import process_image_for_display

        with pytest.raises(ValueError, match="Unknown tone mapping"):
            process_image_for_display(np.zeros((2, 2, 3), dtype=np.float32), tone_map="filmic")


class TestImageToUint8:
    """Test conversion to uint8."""

    def test_image_to_uint8_black_and_white(self):
        """Test black maps to 0 and white to 255."""
        from src.facet.preview.export import image_to_uint8

        image = np.zeros((1, 2, 3), dtype=np.float32)
        image[0, 1] = 1.0
        result = image_to_uint8(image)

        assert result.dtype == np.uint8
        assert np.all(result[0, 0] == 0)
        assert np.all(result[0, 1] == 255)

    def test_image_to_uint8_rounds(self):
        """Test values are rounded to the nearest level, not truncated."""
        from src.facet.preview.export import image_to_uint8

        # 0.999 * 255 = 254.7
        image = np.full((1, 1, 3), 0.999, dtype=np.float32)
        result = image_to_uint8(image, gamma=1.0)

        assert np.all(result == 255)


class TestSavePng:
    """Test PNG export."""

    def test_save_png_from_image_buffer(self):
        """Test that save_png writes an RGB PNG of the sink's size."""
        from src.facet.preview.export import ImageBuffer, save_png

        buffer = ImageBuffer(8, 4)
        buffer.set_pixel(0, 0, (1.0, 0.0, 0.0))

        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            filepath = f.name

        try:
            save_png(buffer, filepath, gamma=2.2)

            assert os.path.exists(filepath)
            img = PILImage.open(filepath)
            assert img.size == (8, 4)
            assert img.mode == "RGB"
            assert img.getpixel((0, 0)) == (255, 0, 0)
        finally:
            if os.path.exists(filepath):
                os.remove(filepath)

    def test_save_png_from_array(self, tmp_path):
        """Test saving a NumPy array as PNG with each tone map."""
        from src.facet.preview.export import save_png_from_array

        image = np.zeros((16, 32, 3), dtype=np.float32)
        image[:, :, 0] = np.linspace(0, 3, 32)

        for tone_map in ["none", "reinhard", "exposure"]:
            filepath = tmp_path / f"{tone_map}.png"
            save_png_from_array(image, str(filepath), tone_map=tone_map)

            img = PILImage.open(filepath)
            assert img.size == (32, 16)  # PIL size is (width, height)


class TestComputeRmse:
    """Test RMSE computation."""

    def test_rmse_identical_images(self):
        """Test that identical images have zero RMSE."""
        from src.facet.preview.export import compute_rmse

        image = np.random.default_rng(1).random((8, 8, 3)).astype(np.float32)
        assert compute_rmse(image, image) == 0.0

    def test_rmse_constant_difference(self):
        """Test that a constant offset gives that offset as RMSE."""
        from src.facet.preview.export import compute_rmse

        a = np.zeros((4, 4, 3), dtype=np.float32)
        b = np.full((4, 4, 3), 0.5, dtype=np.float32)

        assert abs(compute_rmse(a, b) - 0.5) < 1e-9

    def test_rmse_shape_mismatch_raises(self):
        """Test that mismatched shapes raise ValueError."""
        from src.facet.preview.export import compute_rmse

        with pytest.raises(ValueError, match="shapes must match"):
            compute_rmse(np.zeros((4, 4, 3)), np.zeros((4, 5, 3)))


class TestModuleExports:
    """Test that the package exports the public API."""

    def test_preview_exports(self):
        """Test the names re-exported by the preview package."""
        import src.facet.preview as preview

        for name in preview.__all__:
            assert hasattr(preview, name)
