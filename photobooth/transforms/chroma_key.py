"""
Chroma-Key Compositor.

Keys a green-screen background out of a still:
a pixel becomes fully transparent when green > 80 and green dominates both
red and blue by more than 30. Everything else is left untouched.

No temporal smoothing, no edge feathering; the transform is per-pixel and
deterministic.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

import numpy as np
from numpy.typing import NDArray
from loguru import logger

from photobooth.core.contracts import StillImage
from photobooth.core.errors import CompositingFailed
from photobooth.transforms.raster import PngCodec


class ChromaKeyCompositor:
    """
    Green-screen removal on encoded stills.

    Guarantees:
    - Only the alpha channel of keyed pixels changes
    - Failures raise CompositingFailed; the input is never returned in
      place of a result
    """

    def __init__(
        self,
        codec: Optional[PngCodec] = None,
        green_min: int = 80,
        dominance: int = 30,
    ):
        """
        Initialize compositor.

        Args:
            codec: Raster codec for decode/encode
            green_min: Green must exceed this value
            dominance: Green must exceed red and blue by more than this
        """
        self.codec = codec or PngCodec()
        self.green_min = green_min
        self.dominance = dominance

    def key_mask(self, rgba: NDArray[np.uint8]) -> NDArray[np.bool_]:
        """Boolean mask of pixels to make transparent."""
        # Widen before adding so uint8 arithmetic cannot wrap
        r = rgba[:, :, 0].astype(np.int16)
        g = rgba[:, :, 1].astype(np.int16)
        b = rgba[:, :, 2].astype(np.int16)
        return (g > self.green_min) & (g > r + self.dominance) & (g > b + self.dominance)

    def key_pixels(self, rgba: NDArray[np.uint8]) -> NDArray[np.uint8]:
        """Return a copy of an RGBA buffer with keyed pixels at alpha 0."""
        if rgba.ndim != 3 or rgba.shape[2] != 4:
            raise ValueError(f"Expected H x W x 4 RGBA pixels, got shape {rgba.shape}")
        if rgba.dtype != np.uint8:
            raise ValueError(f"Expected 8-bit samples, got {rgba.dtype}")

        keyed = rgba.copy()
        keyed[:, :, 3][self.key_mask(rgba)] = 0
        return keyed

    def apply(self, still: StillImage) -> StillImage:
        """
        Key a still and re-encode it in the same raster format.

        Raises:
            CompositingFailed: if the still cannot be decoded or processed
        """
        try:
            rgba = self.codec.decode(still.data)
            keyed = self.key_pixels(rgba)
            data = self.codec.encode(keyed)
        except Exception as e:
            logger.error(f"Chroma key failed: {e}")
            raise CompositingFailed(f"chroma key failed: {e}") from e

        return replace(still, data=data, chroma_keyed=True)
