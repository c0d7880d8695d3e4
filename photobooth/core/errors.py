"""
Error kinds raised or reported by the photobooth core.

Every failure is scoped to one session or one operation and leaves the
system retryable.
"""

from __future__ import annotations

from typing import Iterable, Tuple


class PhotoboothError(Exception):
    """Base class for photobooth failures."""


class StreamRequestError(PhotoboothError):
    """The host rejected a stream request for a constraint set."""


class NegotiationExhausted(PhotoboothError):
    """Every fallback tier failed."""

    def __init__(self, attempted: Iterable[str], last_error: Exception | None = None):
        self.attempted: Tuple[str, ...] = tuple(attempted)
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(
            f"Unable to start camera after {len(self.attempted)} attempt(s) "
            f"({', '.join(self.attempted)}){detail}"
        )


class SessionLost(PhotoboothError):
    """A live track ended and was not recovered."""


class PlaybackFailed(PhotoboothError):
    """The render sink could not start playback of a bound stream."""


class CompositingFailed(PhotoboothError):
    """The chroma-key transform could not process a still."""


class EnumerationFailed(PhotoboothError):
    """Device enumeration failed."""


class CaptureUnavailable(PhotoboothError):
    """No frame could be read from the live session."""
