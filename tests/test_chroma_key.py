"""Tests for raster encoding and chroma keying."""

import cv2
import numpy as np
import pytest

from photobooth.core.contracts import StillImage
from photobooth.core.errors import CompositingFailed
from photobooth.transforms.chroma_key import ChromaKeyCompositor
from photobooth.transforms.raster import PngCodec, RasterError


@pytest.fixture
def codec():
    return PngCodec()


@pytest.fixture
def compositor(codec):
    return ChromaKeyCompositor(codec=codec)


class TestPngCodec:
    def test_rgb_decodes_as_opaque_rgba(self, codec, green_frame):
        rgba = codec.decode(codec.encode(green_frame))
        assert rgba.shape == (4, 4, 4)
        assert (rgba[:, :, 3] == 255).all()
        assert tuple(rgba[0, 0, :3]) == (0, 255, 0)
        assert tuple(rgba[0, 3, :3]) == (255, 255, 255)

    def test_png_signature(self, codec, green_frame):
        assert codec.encode(green_frame)[:8] == b"\x89PNG\r\n\x1a\n"

    def test_rejects_garbage(self, codec):
        with pytest.raises(RasterError):
            codec.decode(b"not an image")

    def test_rejects_empty(self, codec):
        with pytest.raises(RasterError):
            codec.decode(b"")

    def test_rejects_bad_shape(self, codec):
        with pytest.raises(RasterError):
            codec.encode(np.zeros((4, 4), dtype=np.uint8))


class TestChromaKey:
    @pytest.mark.parametrize("rgb,keyed", [
        ((0, 255, 0), True),
        ((255, 255, 255), False),
        ((60, 80, 20), False),     # green not above 80
        ((60, 90, 60), False),     # margin exactly 30
        ((59, 90, 59), True),
        ((200, 220, 10), False),   # red too close
    ])
    def test_pixel_rule(self, compositor, rgb, keyed):
        rgba = np.array([[[*rgb, 255]]], dtype=np.uint8)
        result = compositor.key_pixels(rgba)
        assert bool(result[0, 0, 3] == 0) is keyed
        assert tuple(result[0, 0, :3]) == rgb

    def test_key_pixels_leaves_input_untouched(self, compositor):
        rgba = np.full((2, 2, 4), (0, 255, 0, 255), dtype=np.uint8)
        compositor.key_pixels(rgba)
        assert (rgba[:, :, 3] == 255).all()

    def test_key_pixels_requires_rgba(self, compositor, green_frame):
        with pytest.raises(ValueError):
            compositor.key_pixels(green_frame)

    def test_apply_keys_green_half(self, codec, compositor, green_frame):
        still = StillImage(data=codec.encode(green_frame), captured_at=1.0)

        keyed = compositor.apply(still)

        assert keyed.chroma_keyed
        assert keyed.captured_at == 1.0
        assert keyed.mime_type == "image/png"
        rgba = codec.decode(keyed.data)
        assert (rgba[:, :2, 3] == 0).all()
        assert (rgba[:, 2:, 3] == 255).all()
        assert (rgba[:, 2:, :3] == 255).all()

    def test_apply_failure_raises(self, compositor):
        with pytest.raises(CompositingFailed):
            compositor.apply(StillImage(data=b"\x00\x01garbage"))

    def test_custom_thresholds(self, codec):
        strict = ChromaKeyCompositor(codec=codec, green_min=250, dominance=30)
        rgba = np.array([[[0, 200, 0, 255]]], dtype=np.uint8)
        assert strict.key_pixels(rgba)[0, 0, 3] == 255


class TestSixteenBitInput:
    @pytest.fixture
    def deep_png(self):
        """1x2 16-bit BGRA PNG: bright green, then near-white."""
        bgra = np.array([[
            [0, 65535, 0, 65535],
            [60000, 60000, 60000, 65535],
        ]], dtype=np.uint16)
        ok, encoded = cv2.imencode(".png", bgra)
        assert ok
        return encoded.tobytes()

    def test_decode_reduces_to_8_bit(self, codec, deep_png):
        rgba = codec.decode(deep_png)
        assert rgba.dtype == np.uint8
        assert tuple(rgba[0, 0]) == (0, 255, 0, 255)
        assert tuple(rgba[0, 1, :3]) == (234, 234, 234)

    def test_green_is_keyed_in_16_bit_still(self, codec, compositor, deep_png):
        keyed = compositor.apply(StillImage(data=deep_png))
        rgba = codec.decode(keyed.data)
        assert rgba[0, 0, 3] == 0
        assert rgba[0, 1, 3] == 255

    def test_key_pixels_rejects_wide_samples(self, compositor):
        with pytest.raises(ValueError):
            compositor.key_pixels(np.zeros((1, 1, 4), dtype=np.uint16))
