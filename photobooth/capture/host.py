"""
Host capabilities consumed by the acquisition controller.

To plug in a new camera backend:
1. Subclass MediaTrack, MediaStream and MediaHost
2. Raise StreamRequestError from request_stream() when a constraint set
   cannot be satisfied
3. Call track.emit(TrackEvent.ENDED) when the device goes away

Example implementation:
    class FileHost(MediaHost):
        async def request_stream(self, constraints):
            return FileStream(self.path)

        async def enumerate_devices(self):
            return [DeviceInfo(device_id="file", label=self.path)]
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

import numpy as np
from numpy.typing import NDArray

from photobooth.core.contracts import DeviceInfo, ReadyState, TrackEvent, TrackSettings
from photobooth.capture.constraints import VideoConstraints


TrackListener = Callable[["MediaTrack"], None]


class MediaTrack(ABC):
    """A single video track inside a stream.

    Listener bookkeeping is shared by all backends; subclasses only report
    settings, readiness and stop the device.
    """

    def __init__(self, label: str = ""):
        self.label = label
        self._listeners: Dict[TrackEvent, List[TrackListener]] = {
            event: [] for event in TrackEvent
        }

    @property
    @abstractmethod
    def ready_state(self) -> ReadyState:
        pass

    @abstractmethod
    def get_settings(self) -> TrackSettings:
        pass

    @abstractmethod
    def stop(self) -> None:
        """Release the device. Must not emit ENDED."""
        pass

    def add_listener(self, event: TrackEvent, callback: TrackListener) -> None:
        self._listeners[event].append(callback)

    def remove_listener(self, event: TrackEvent, callback: TrackListener) -> None:
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def clear_listeners(self) -> None:
        for callbacks in self._listeners.values():
            callbacks.clear()

    def emit(self, event: TrackEvent) -> None:
        # Copy: a handler may detach listeners while we iterate
        for callback in list(self._listeners[event]):
            callback(self)


class MediaStream(ABC):
    """A live stream made of one or more video tracks."""

    @property
    @abstractmethod
    def video_tracks(self) -> List[MediaTrack]:
        pass

    def stop(self) -> None:
        for track in self.video_tracks:
            track.stop()


class MediaHost(ABC):
    """The host media-capture capability."""

    @abstractmethod
    async def request_stream(self, constraints: VideoConstraints) -> MediaStream:
        """Open a stream matching the constraints.

        Raises:
            StreamRequestError: if the host rejects the request
        """
        pass

    @abstractmethod
    async def enumerate_devices(self) -> List[DeviceInfo]:
        pass


class RenderSink(ABC):
    """Consumer surface a live stream is attached to."""

    @abstractmethod
    def attach(self, stream: MediaStream) -> None:
        pass

    @abstractmethod
    def detach(self) -> None:
        pass

    @abstractmethod
    async def play(self) -> None:
        """Begin playback of the attached stream.

        Raises on failure; the stream stays live.
        """
        pass

    @property
    @abstractmethod
    def video_width(self) -> int:
        """Observed playback width, 0 until frames arrive."""
        pass

    @property
    @abstractmethod
    def video_height(self) -> int:
        pass

    @abstractmethod
    def read_frame(self) -> Optional[NDArray[np.uint8]]:
        """Current frame as RGB (H x W x 3), or None if not ready."""
        pass
