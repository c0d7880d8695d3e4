"""
Acquisition Controller.

Owns the lifecycle of one live capture session:

1. Negotiate a stream through the ordered fallback plan
2. Bind the stream to the render sink and start playback
3. Monitor track signals (ended / muted / unmuted) and poll settings
4. Recover once, automatically, when a safe-mode track ends
5. Release everything on stop

Runs on a single event loop. Handlers always read controller state at
invocation time; a generation counter invalidates work started for a
session that has since been stopped or replaced.
"""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

from loguru import logger

from photobooth.core.contracts import (
    CaptureSession,
    ConstraintTier,
    DeviceInfo,
    NegotiationResult,
    ReadyState,
    Resolution,
    SessionPreferences,
    SessionState,
    TrackEvent,
    TrackHealth,
    TrackSettings,
)
from photobooth.core.errors import (
    EnumerationFailed,
    NegotiationExhausted,
    PhotoboothError,
    PlaybackFailed,
    SessionLost,
)
from photobooth.capture.constraints import (
    MINIMAL_CONSTRAINTS,
    SAFE_RECOVERY_CONSTRAINTS,
    SAFE_RECOVERY_TAG,
    VideoConstraints,
    build_fallback_plan,
)
from photobooth.capture.diagnostics import DiagnosticLog
from photobooth.capture.host import MediaHost, MediaStream, MediaTrack, RenderSink


class AcquisitionController:
    """
    Negotiates, monitors and recovers a live video session.

    Guarantees:
    - At most one negotiation in flight; start requests queue behind it
    - Exactly one live stream per controller
    - A stream produced after stop() is released, never bound
    - At most one automatic recovery per safe-mode session
    """

    def __init__(
        self,
        host: MediaHost,
        sink: Optional[RenderSink] = None,
        poll_interval: float = 2.0,
        diagnostics_capacity: int = 20,
        on_error: Optional[Callable[[PhotoboothError], None]] = None,
    ):
        """
        Initialize acquisition controller.

        Args:
            host: Host media-capture capability
            sink: Render sink the live stream is attached to
            poll_interval: Seconds between health polls
            diagnostics_capacity: Diagnostic entries retained
            on_error: Called with errors discovered by event handlers
        """
        self._host = host
        self._sink = sink
        self.poll_interval = poll_interval
        self._on_error = on_error
        self._log = DiagnosticLog(capacity=diagnostics_capacity)

        self._negotiation_lock = asyncio.Lock()
        self._negotiating = False
        self._generation = 0

        # Live stream
        self._stream: Optional[MediaStream] = None
        self._attached_stream: Optional[MediaStream] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._recovery_task: Optional[asyncio.Task] = None

        # Session state
        self._state = SessionState.IDLE
        self._active_tier: Optional[ConstraintTier] = None
        self._fallback_path: Optional[str] = None
        self._constraint_label: Optional[str] = None
        self._track_health: Optional[TrackHealth] = None
        self._settings: Optional[TrackSettings] = None
        self._resolution: Optional[Resolution] = None
        self._muted = False
        self._last_error: Optional[PhotoboothError] = None

        # Safe mode: one-shot recovery flag, reset only by stop() or a new start
        self._safe_mode = False
        self._recovery_used = False

        # Devices
        self.devices: List[DeviceInfo] = []
        self.selected_device_id: Optional[str] = None
        self.last_enumeration_error: Optional[EnumerationFailed] = None

    # ------------------------------------------------------------
    # Negotiation
    # ------------------------------------------------------------

    async def start_session(
        self,
        prefs: Optional[SessionPreferences] = None,
        safe_mode: bool = False,
    ) -> NegotiationResult:
        """
        Start a session, releasing any previous one.

        Args:
            prefs: Device/resolution preferences; defaults to the selected device
            safe_mode: Start from the unconstrained tier and arm recovery

        Returns:
            NegotiationResult with the winning tier or NegotiationExhausted
        """
        if prefs is None:
            prefs = SessionPreferences(device_id=self.selected_device_id)

        async with self._negotiation_lock:
            self._negotiating = True
            try:
                return await self._negotiate(prefs, safe_mode)
            finally:
                self._negotiating = False

    async def start_safe_session(self) -> NegotiationResult:
        """Kiosk entry point: minimal request with one automatic recovery."""
        return await self.start_session(SessionPreferences(), safe_mode=True)

    async def _negotiate(self, prefs: SessionPreferences, safe_mode: bool) -> NegotiationResult:
        self._abandon_recovery()
        self._release_stream()
        self._generation += 1
        generation = self._generation

        self._safe_mode = safe_mode
        self._recovery_used = False
        self._last_error = None
        self._active_tier = None
        self._fallback_path = None
        self._constraint_label = None
        self._state = SessionState.NEGOTIATING

        logger.debug(
            f"start flags: safe={safe_mode}, minimal={prefs.minimal_constraints}, "
            f"resolution={prefs.resolution.value}, ignoreDeviceId={prefs.ignore_device_id}, "
            f"selected={prefs.device_id or 'none'}"
        )

        attempted: List[str] = []
        last_failure: Optional[Exception] = None

        for step in build_fallback_plan(prefs, safe_mode):
            if generation != self._generation:
                return NegotiationResult(success=False, attempted=attempted, cancelled=True)

            constraints = step.build(prefs)
            self._fallback_path = step.tag
            self._constraint_label = constraints.describe()
            attempted.append(step.tag)
            self._log.info(f"getUserMedia attempt ({step.tag}) {constraints.describe()}")

            try:
                stream = await self._host.request_stream(constraints)
            except Exception as e:
                last_failure = e
                logger.warning(f"Constraints '{step.tag}' failed: {e}")
                continue

            if generation != self._generation:
                stream.stop()
                logger.info(f"Stream from '{step.tag}' released: stop requested during negotiation")
                return NegotiationResult(success=False, attempted=attempted, cancelled=True)

            self._log.info(f"getUserMedia success via {step.tag}")
            self._bind(stream, step.tier, step.tag, constraints)
            playback_error = await self._start_playback(stream, generation)
            return NegotiationResult(
                success=True,
                tier=step.tier,
                attempted=attempted,
                playback_error=playback_error,
            )

        if generation != self._generation:
            logger.info("Negotiation ended by stop request")
            return NegotiationResult(success=False, attempted=attempted, cancelled=True)

        error = NegotiationExhausted(attempted, last_failure)
        self._state = SessionState.IDLE
        self._fallback_path = None
        self._constraint_label = None
        self._last_error = error
        self._log.error(f"startCamera failed: {error}")
        return NegotiationResult(success=False, attempted=attempted, error=error)

    # ------------------------------------------------------------
    # Binding and playback
    # ------------------------------------------------------------

    def _bind(
        self,
        stream: MediaStream,
        tier: ConstraintTier,
        tag: str,
        constraints: VideoConstraints,
    ) -> None:
        self._stream = stream
        self._active_tier = tier
        self._fallback_path = tag
        self._constraint_label = constraints.describe()
        self._muted = False

        for track in stream.video_tracks:
            track.add_listener(TrackEvent.ENDED, self._on_track_ended)
            track.add_listener(TrackEvent.MUTED, self._on_track_muted)
            track.add_listener(TrackEvent.UNMUTED, self._on_track_unmuted)

        self._refresh_from_track()
        self._attach(stream)
        self._state = SessionState.LIVE
        self._start_polling()

    def _attach(self, stream: MediaStream) -> None:
        if self._sink is None or stream is self._attached_stream:
            return
        self._sink.attach(stream)
        self._attached_stream = stream

    async def _start_playback(self, stream: MediaStream, generation: int) -> Optional[PlaybackFailed]:
        if self._sink is not None:
            try:
                await self._sink.play()
            except Exception as e:
                error = PlaybackFailed(f"video play failed: {e}")
                self._last_error = error
                self._log.error(str(error))
                return error

        if generation != self._generation or self._stream is not stream:
            return None

        self._refresh_from_track()
        self._update_resolution()
        settings = self._settings or TrackSettings()
        width = self._resolution.width if self._resolution else "n/a"
        height = self._resolution.height if self._resolution else "n/a"
        frame_rate = settings.frame_rate if settings.frame_rate is not None else "n/a"
        ready = self._track_health.ready_state.value if self._track_health else "n/a"
        self._log.info(f"video playing w={width} h={height} fps={frame_rate} track={ready}")

        await self.enumerate_devices()
        return None

    async def retry_playback(self) -> Optional[PlaybackFailed]:
        """Retry playback on the live stream after a PlaybackFailed."""
        if self._stream is None:
            return PlaybackFailed("no live stream to play")
        return await self._start_playback(self._stream, self._generation)

    # ------------------------------------------------------------
    # Health monitoring
    # ------------------------------------------------------------

    def _owns(self, track: MediaTrack) -> bool:
        return self._stream is not None and track in self._stream.video_tracks

    def _on_track_ended(self, track: MediaTrack) -> None:
        if not self._owns(track):
            return

        if self._safe_mode and not self._recovery_used:
            self._recovery_used = True
            self._log.warn(f"track ended; retrying safe low ({SAFE_RECOVERY_TAG})")
            self._release_stream()
            self._state = SessionState.NEGOTIATING
            loop = asyncio.get_running_loop()
            self._recovery_task = loop.create_task(self._recover(self._generation))
            return

        self._release_stream()
        self._state = SessionState.STOPPED
        self._log.warn("track ended")
        self._report(SessionLost("Camera stopped"))

    def _on_track_muted(self, track: MediaTrack) -> None:
        if not self._owns(track):
            return
        self._muted = True
        self._state = SessionState.DEGRADED
        self._refresh_from_track()
        self._log.warn("track muted")

    def _on_track_unmuted(self, track: MediaTrack) -> None:
        if not self._owns(track):
            return
        self._muted = False
        self._state = SessionState.LIVE
        self._refresh_from_track()
        self._log.info("track unmuted")

    async def _recover(self, generation: int) -> None:
        if generation != self._generation:
            return
        constraints = SAFE_RECOVERY_CONSTRAINTS
        self._fallback_path = SAFE_RECOVERY_TAG
        self._constraint_label = constraints.describe()
        self._log.info(f"getUserMedia attempt ({SAFE_RECOVERY_TAG}) {constraints.describe()}")

        try:
            stream = await self._host.request_stream(constraints)
        except Exception as e:
            if generation != self._generation:
                return
            self._state = SessionState.STOPPED
            self._log.error(f"safe low retry failed: {e}")
            self._report(SessionLost(f"safe low retry failed: {e}"))
            return

        if generation != self._generation:
            stream.stop()
            return

        self._log.info(f"getUserMedia success via {SAFE_RECOVERY_TAG}")
        self._bind(stream, ConstraintTier.SAFE_RECOVERY, SAFE_RECOVERY_TAG, constraints)
        await self._start_playback(stream, generation)

    def _start_polling(self) -> None:
        self._cancel_polling()
        loop = asyncio.get_running_loop()
        self._poll_task = loop.create_task(self._poll_loop(self._stream))

    async def _poll_loop(self, stream: MediaStream) -> None:
        while self._stream is stream:
            await asyncio.sleep(self.poll_interval)
            if self._stream is not stream:
                break
            self.poll_health()

    def poll_health(self) -> Optional[TrackHealth]:
        """Re-read settings, label and readiness of the live track."""
        if self._stream is None:
            return None
        self._refresh_from_track()
        self._update_resolution()
        return self._track_health

    def _primary_track(self) -> Optional[MediaTrack]:
        if self._stream is None or not self._stream.video_tracks:
            return None
        return self._stream.video_tracks[0]

    def _refresh_from_track(self) -> None:
        track = self._primary_track()
        if track is None:
            return

        ready_state = track.ready_state
        if self._muted and ready_state is not ReadyState.ENDED:
            ready_state = ReadyState.MUTED
        self._track_health = TrackHealth(
            label=track.label or "Unknown camera",
            ready_state=ready_state,
        )

        settings = track.get_settings()
        previous = self._settings or TrackSettings()
        self._settings = TrackSettings(
            width=settings.width if settings.width is not None else previous.width,
            height=settings.height if settings.height is not None else previous.height,
            frame_rate=(
                settings.frame_rate if settings.frame_rate is not None else previous.frame_rate
            ),
            device_label=track.label or previous.device_label,
        )

    def _update_resolution(self) -> None:
        settings = self._settings or TrackSettings()
        width = settings.width or (self._sink.video_width if self._sink else 0) or 0
        height = settings.height or (self._sink.video_height if self._sink else 0) or 0
        self._resolution = Resolution(width, height) if width and height else None

    # ------------------------------------------------------------
    # Stop / release
    # ------------------------------------------------------------

    def stop(self) -> None:
        """Release the session. Safe to call repeatedly."""
        self._generation += 1
        self._abandon_recovery()
        self._release_stream()

        self._safe_mode = False
        self._recovery_used = False
        self._active_tier = None
        self._fallback_path = None
        self._constraint_label = None
        if self._state is not SessionState.IDLE:
            self._state = SessionState.STOPPED
        self._log.info("stopCamera called; stream cleaned")

    def _release_stream(self) -> None:
        self._cancel_polling()

        stream = self._stream
        self._stream = None
        if stream is not None:
            for track in stream.video_tracks:
                track.remove_listener(TrackEvent.ENDED, self._on_track_ended)
                track.remove_listener(TrackEvent.MUTED, self._on_track_muted)
                track.remove_listener(TrackEvent.UNMUTED, self._on_track_unmuted)
            stream.stop()

        if self._sink is not None and self._attached_stream is not None:
            self._sink.detach()
        self._attached_stream = None

        self._track_health = None
        self._settings = None
        self._resolution = None
        self._muted = False

    def _cancel_polling(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
        self._poll_task = None

    def _abandon_recovery(self) -> None:
        # Left running: its generation check releases any stream it still produces
        self._recovery_task = None

    def _report(self, error: PhotoboothError) -> None:
        self._last_error = error
        if self._on_error is not None:
            self._on_error(error)

    # ------------------------------------------------------------
    # Devices and probes
    # ------------------------------------------------------------

    async def enumerate_devices(self) -> List[DeviceInfo]:
        """
        List video inputs. Seeds the selected device when none is set.

        Failures are non-fatal and yield an empty list.
        """
        try:
            found = await self._host.enumerate_devices()
        except Exception as e:
            self.last_enumeration_error = EnumerationFailed(str(e))
            logger.warning(f"Device enumeration failed: {e}")
            return []

        self.last_enumeration_error = None
        video_inputs = [d for d in found if d.kind == "videoinput"]
        devices = [
            DeviceInfo(device_id=d.device_id, label=d.label or f"Camera {idx + 1}", kind=d.kind)
            for idx, d in enumerate(video_inputs)
        ]
        self.devices = devices
        if self.selected_device_id is None and devices:
            self.selected_device_id = devices[0].device_id
        return devices

    async def run_basic_test(self) -> Optional[TrackSettings]:
        """Open and immediately close a minimal stream, logging what it reports."""
        self._log.info("basic test start (video:true)")
        try:
            stream = await self._host.request_stream(MINIMAL_CONSTRAINTS)
        except Exception as e:
            self._log.error(f"basic test error: {e}")
            return None

        tracks = stream.video_tracks
        track = tracks[0] if tracks else None
        settings = track.get_settings() if track is not None else TrackSettings()
        self._log.info(
            f"basic test success w={settings.width or 'n/a'} h={settings.height or 'n/a'} "
            f"fps={settings.frame_rate or 'n/a'} "
            f"state={track.ready_state.value if track is not None else 'n/a'}"
        )
        stream.stop()
        return settings

    # ------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------

    @property
    def session(self) -> CaptureSession:
        return CaptureSession(
            state=self._state,
            active_tier=self._active_tier,
            track_health=self._track_health,
            settings=self._settings,
            resolution=self._resolution,
            fallback_path=self._fallback_path,
            constraint_label=self._constraint_label,
            safe_mode=self._safe_mode,
            diagnostics=self._log.entries(),
            last_error=self._last_error,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active_tier(self) -> Optional[ConstraintTier]:
        return self._active_tier

    @property
    def resolution(self) -> Optional[Resolution]:
        return self._resolution

    @property
    def track_health(self) -> Optional[TrackHealth]:
        return self._track_health

    @property
    def last_error(self) -> Optional[PhotoboothError]:
        return self._last_error

    @property
    def is_negotiating(self) -> bool:
        return self._negotiating

    @property
    def stream(self) -> Optional[MediaStream]:
        return self._stream

    @property
    def sink(self) -> Optional[RenderSink]:
        return self._sink

    @property
    def pending_recovery(self) -> Optional[asyncio.Task]:
        """The in-flight safe-mode recovery, if any."""
        return self._recovery_task
