"""Shared pytest configuration and fixtures for the photobooth test suite."""

import sys
from pathlib import Path
from typing import Callable, List, Optional

import numpy as np
import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from photobooth.core.contracts import DeviceInfo, ReadyState, TrackEvent, TrackSettings  # noqa: E402
from photobooth.core.errors import StreamRequestError  # noqa: E402
from photobooth.capture.constraints import VideoConstraints  # noqa: E402
from photobooth.capture.host import MediaHost, MediaStream, MediaTrack, RenderSink  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "hardware: mark test as requiring a physical camera"
    )


def pytest_addoption(parser):
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Run tests that require a physical camera",
    )


def pytest_collection_modifyitems(config, items):
    """Skip hardware tests unless --run-hardware is specified."""
    if config.getoption("--run-hardware"):
        return

    skip_hardware = pytest.mark.skip(reason="Need --run-hardware option to run")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


# =============================================================================
# Fake host capability
# =============================================================================

class FakeTrack(MediaTrack):
    def __init__(self, label: str = "Fake Camera", settings: Optional[TrackSettings] = None):
        super().__init__(label=label)
        self.settings = settings or TrackSettings(width=1280, height=720, frame_rate=30.0)
        self.state = ReadyState.LIVE
        self.stopped = False

    @property
    def ready_state(self) -> ReadyState:
        return self.state

    def get_settings(self) -> TrackSettings:
        return self.settings

    def stop(self) -> None:
        self.stopped = True
        self.state = ReadyState.ENDED

    def end(self) -> None:
        """Simulate the device going away."""
        self.state = ReadyState.ENDED
        self.emit(TrackEvent.ENDED)


class FakeStream(MediaStream):
    def __init__(self, track: FakeTrack):
        self.track = track

    @property
    def video_tracks(self) -> List[MediaTrack]:
        return [self.track]


class FakeHost(MediaHost):
    """
    Scriptable host.

    `accept` decides per request whether a stream is produced; the default
    accepts everything. Every request is recorded in `requests`.
    """

    def __init__(self, accept: Optional[Callable[[VideoConstraints], bool]] = None):
        self.accept = accept or (lambda constraints: True)
        self.requests: List[VideoConstraints] = []
        self.streams: List[FakeStream] = []
        self.devices = [
            DeviceInfo(device_id="cam-1", label="Front"),
            DeviceInfo(device_id="cam-2", label=""),
            DeviceInfo(device_id="mic-1", label="Mic", kind="audioinput"),
        ]
        self.enumerate_error: Optional[Exception] = None
        self.before_return: Optional[Callable[[], None]] = None

    async def request_stream(self, constraints: VideoConstraints) -> MediaStream:
        return self.open_stream(constraints)

    def open_stream(self, constraints: VideoConstraints) -> FakeStream:
        """Synchronous body of request_stream, usable from a worker thread."""
        self.requests.append(constraints)
        if not self.accept(constraints):
            raise StreamRequestError(f"rejected {constraints.describe()}")
        if self.before_return is not None:
            self.before_return()
        width = constraints.width.ideal if constraints.width else 640
        height = constraints.height.ideal if constraints.height else 480
        stream = FakeStream(FakeTrack(settings=TrackSettings(
            width=int(width), height=int(height), frame_rate=30.0,
        )))
        self.streams.append(stream)
        return stream

    async def enumerate_devices(self) -> List[DeviceInfo]:
        if self.enumerate_error is not None:
            raise self.enumerate_error
        return list(self.devices)


class FakeSink(RenderSink):
    def __init__(self, frame: Optional[np.ndarray] = None):
        self.attached: Optional[MediaStream] = None
        self.attach_calls = 0
        self.detach_calls = 0
        self.play_error: Optional[Exception] = None
        self.width = 0
        self.height = 0
        self.frame = frame

    def attach(self, stream: MediaStream) -> None:
        self.attached = stream
        self.attach_calls += 1

    def detach(self) -> None:
        self.attached = None
        self.detach_calls += 1

    async def play(self) -> None:
        if self.play_error is not None:
            raise self.play_error

    @property
    def video_width(self) -> int:
        return self.width

    @property
    def video_height(self) -> int:
        return self.height

    def read_frame(self) -> Optional[np.ndarray]:
        return self.frame


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def green_frame() -> np.ndarray:
    """4x4 RGB frame: left half pure green, right half white."""
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    frame[:, :2] = (0, 255, 0)
    frame[:, 2:] = (255, 255, 255)
    return frame


@pytest.fixture
def make_host() -> Callable[..., FakeHost]:
    """Factory for hosts with a custom accept rule."""
    return FakeHost
