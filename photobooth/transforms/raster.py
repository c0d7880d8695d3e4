"""
PNG raster codec.

Stills travel as encoded PNG bytes; pixel work happens on RGBA arrays.
"""

from __future__ import annotations

import cv2
import numpy as np
from numpy.typing import NDArray


class RasterError(ValueError):
    """Bytes could not be decoded, or pixels could not be encoded."""


class PngCodec:
    """Decode/encode between PNG bytes and RGBA (H x W x 4) arrays."""

    mime_type = "image/png"

    def decode(self, data: bytes) -> NDArray[np.uint8]:
        if not data:
            raise RasterError("Empty image payload")

        buffer = np.frombuffer(data, dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
        if image is None:
            raise RasterError("Unreadable image payload")
        if image.dtype == np.uint16:
            # 16-bit PNG: keep the high byte so 8-bit thresholds apply
            image = (image >> 8).astype(np.uint8)
        elif image.dtype != np.uint8:
            raise RasterError(f"Unsupported sample type {image.dtype}")

        if image.ndim == 2:
            return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
        if image.shape[2] == 3:
            return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)

    def encode(self, pixels: NDArray[np.uint8]) -> bytes:
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise RasterError(f"Expected H x W x 3|4 pixels, got shape {pixels.shape}")

        if pixels.shape[2] == 3:
            bgr = cv2.cvtColor(pixels, cv2.COLOR_RGB2BGR)
        else:
            bgr = cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGRA)

        ok, encoded = cv2.imencode(".png", bgr)
        if not ok:
            raise RasterError("PNG encoding failed")
        return encoded.tobytes()
