"""
Core contracts for the photobooth.

Data flow:
1. Acquisition controller negotiates a live stream
2. Facade reads a frame on demand and encodes it as a still
3. Optional chroma-key pass
4. Still appended to the ordered capture list
5. Template frames consume stills by position index
"""

from .contracts import (
    SessionState,
    ConstraintTier,
    CaptureSession,
    StillImage,
    Frame,
    Template,
)
from .errors import PhotoboothError
