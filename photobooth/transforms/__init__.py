"""
Still Transformation Module.

Handles:
- PNG decode/encode to RGBA buffers
- Chroma-key background removal
"""

from .chroma_key import ChromaKeyCompositor
from .raster import PngCodec, RasterError
