"""
OpenCV-backed host capability.

Handles:
- Webcam acquisition through cv2.VideoCapture
- Device enumeration by probing camera indices
- Track end detection from consecutive failed reads
- A render sink that pulls frames on demand
"""

from __future__ import annotations

import asyncio
import os
from typing import List, Optional

import cv2
import numpy as np
from numpy.typing import NDArray
from loguru import logger

from photobooth.core.contracts import DeviceInfo, ReadyState, TrackEvent, TrackSettings
from photobooth.core.errors import StreamRequestError
from photobooth.capture.constraints import VideoConstraints
from photobooth.capture.host import MediaHost, MediaStream, MediaTrack, RenderSink


def _open_capture(index: int, backend: Optional[int]) -> cv2.VideoCapture:
    if backend is None and os.name == "nt":
        backend = cv2.CAP_DSHOW
    if backend is not None:
        return cv2.VideoCapture(index, backend)
    return cv2.VideoCapture(index)


class OpenCVTrack(MediaTrack):
    """A webcam exposed as a video track."""

    def __init__(self, capture: cv2.VideoCapture, index: int, max_failed_reads: int = 5):
        super().__init__(label=f"Camera {index}")
        self.index = index
        self.max_failed_reads = max_failed_reads
        self._capture: Optional[cv2.VideoCapture] = capture
        self._ready_state = ReadyState.LIVE
        self._failed_reads = 0

    @property
    def ready_state(self) -> ReadyState:
        return self._ready_state

    def get_settings(self) -> TrackSettings:
        if self._capture is None:
            return TrackSettings(device_label=self.label)
        width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        fps = float(self._capture.get(cv2.CAP_PROP_FPS))
        return TrackSettings(
            width=width or None,
            height=height or None,
            frame_rate=fps or None,
            device_label=self.label,
        )

    def read(self) -> Optional[NDArray[np.uint8]]:
        """Read one BGR frame. Emits ENDED once reads keep failing."""
        if self._capture is None or self._ready_state is ReadyState.ENDED:
            return None

        ret, frame = self._capture.read()
        if not ret or frame is None:
            self._failed_reads += 1
            if self._failed_reads >= self.max_failed_reads:
                logger.warning(f"{self.label}: {self._failed_reads} failed reads, track ended")
                self._release()
                self.emit(TrackEvent.ENDED)
            return None

        self._failed_reads = 0
        return frame

    def stop(self) -> None:
        self._release()

    def _release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
        self._ready_state = ReadyState.ENDED


class OpenCVStream(MediaStream):

    def __init__(self, track: OpenCVTrack):
        self._tracks: List[MediaTrack] = [track]

    @property
    def video_tracks(self) -> List[MediaTrack]:
        return self._tracks


class OpenCVMediaHost(MediaHost):
    """
    Camera host on top of cv2.VideoCapture.

    Device ids are camera indices as strings. `max` constraints are enforced
    by rejecting streams whose negotiated size exceeds them.
    """

    def __init__(
        self,
        max_devices: int = 4,
        backend: Optional[int] = None,
        max_failed_reads: int = 5,
    ):
        self.max_devices = max_devices
        self.backend = backend
        self.max_failed_reads = max_failed_reads

    async def request_stream(self, constraints: VideoConstraints) -> MediaStream:
        track = await asyncio.to_thread(self._open, constraints)
        return OpenCVStream(track)

    def _open(self, constraints: VideoConstraints) -> OpenCVTrack:
        if constraints.device_id is not None:
            try:
                candidates = [int(constraints.device_id)]
            except ValueError:
                raise StreamRequestError(f"Unknown device '{constraints.device_id}'") from None
        else:
            candidates = list(range(self.max_devices))

        for index in candidates:
            capture = _open_capture(index, self.backend)
            if not capture.isOpened():
                capture.release()
                continue

            capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)
            if constraints.width is not None:
                capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width.ideal)
            if constraints.height is not None:
                capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height.ideal)
            if constraints.frame_rate is not None:
                capture.set(cv2.CAP_PROP_FPS, constraints.frame_rate.ideal)

            width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
            height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
            if (
                (constraints.width is not None and constraints.width.max is not None
                 and width > constraints.width.max)
                or (constraints.height is not None and constraints.height.max is not None
                    and height > constraints.height.max)
            ):
                capture.release()
                raise StreamRequestError(
                    f"Camera {index} negotiated {width}x{height}, over {constraints.describe()}"
                )

            logger.info(f"Camera {index} opened: {width}x{height}")
            return OpenCVTrack(capture, index, self.max_failed_reads)

        raise StreamRequestError(f"No camera could be opened for {constraints.describe()}")

    async def enumerate_devices(self) -> List[DeviceInfo]:
        return await asyncio.to_thread(self._probe)

    def _probe(self) -> List[DeviceInfo]:
        devices = []
        for index in range(self.max_devices):
            capture = _open_capture(index, self.backend)
            try:
                if capture.isOpened():
                    devices.append(DeviceInfo(device_id=str(index), label=""))
            finally:
                capture.release()
        return devices


class OpenCVRenderSink(RenderSink):
    """Pulls frames from the attached stream and tracks playback size."""

    def __init__(self):
        self._stream: Optional[MediaStream] = None
        self._width = 0
        self._height = 0

    def attach(self, stream: MediaStream) -> None:
        self._stream = stream
        self._width = 0
        self._height = 0

    def detach(self) -> None:
        self._stream = None
        self._width = 0
        self._height = 0

    async def play(self) -> None:
        if self._stream is None:
            raise RuntimeError("No stream attached")
        # Read on the loop thread: a failed read may emit ENDED to loop-bound handlers
        frame = self._read_bgr()
        if frame is None:
            raise RuntimeError("No frames received from camera")

    def _read_bgr(self) -> Optional[NDArray[np.uint8]]:
        if self._stream is None or not self._stream.video_tracks:
            return None
        track = self._stream.video_tracks[0]
        if not isinstance(track, OpenCVTrack):
            return None
        frame = track.read()
        if frame is not None:
            self._height, self._width = frame.shape[:2]
        return frame

    def read_frame(self) -> Optional[NDArray[np.uint8]]:
        frame = self._read_bgr()
        if frame is None:
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    @property
    def video_width(self) -> int:
        return self._width

    @property
    def video_height(self) -> int:
        return self._height
