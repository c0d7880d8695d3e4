"""
Photobooth Orchestrator (capture session facade).

Capture path, in order:

1. Acquisition controller keeps a live stream bound to the render sink
2. Read the current frame from the sink on demand
3. Encode it as a PNG still
4. Optionally key out the green background
5. Append to the ordered capture list

Template frames consume stills by position: frame i shows capture i.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from loguru import logger

from photobooth.config import PhotoboothConfig
from photobooth.core.contracts import (
    CaptureResult,
    CaptureSession,
    DeviceInfo,
    Frame,
    NegotiationResult,
    SessionPreferences,
    StillImage,
    Template,
    TrackSettings,
)
from photobooth.core.errors import CaptureUnavailable, CompositingFailed, PhotoboothError
from photobooth.capture.acquisition import AcquisitionController
from photobooth.capture.host import MediaHost, RenderSink
from photobooth.templates.editor import TemplateEditor
from photobooth.templates.library import TemplateLibrary
from photobooth.transforms.chroma_key import ChromaKeyCompositor
from photobooth.transforms.raster import PngCodec, RasterError


class PhotoboothOrchestrator:
    """
    Composes acquisition, chroma keying and the capture list.

    Presentation layers (manual capture screen, kiosk sequencer) call
    start_session / stop_session / capture_still and the template library;
    they read the session snapshot but never mutate it.
    """

    def __init__(
        self,
        host: MediaHost,
        sink: RenderSink,
        config: Optional[PhotoboothConfig] = None,
        library: Optional[TemplateLibrary] = None,
        codec: Optional[PngCodec] = None,
        on_error: Optional[Callable[[PhotoboothError], None]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            host: Host media-capture capability
            sink: Render sink for the live stream
            config: Photobooth configuration
            library: Template library (presets when omitted)
            codec: Raster codec shared by capture and chroma key
            on_error: Receives session errors found by event handlers
        """
        self.config = config or PhotoboothConfig()

        self._codec = codec or PngCodec()
        self._compositor = ChromaKeyCompositor(
            codec=self._codec,
            green_min=self.config.chroma_key.green_min,
            dominance=self.config.chroma_key.dominance,
        )
        self._controller = AcquisitionController(
            host,
            sink,
            poll_interval=self.config.video.poll_interval,
            diagnostics_capacity=self.config.logging.diagnostics_capacity,
            on_error=on_error,
        )

        self.library = library or TemplateLibrary()
        self.editor = TemplateEditor(self.library, editing_enabled=not self.config.kiosk.enabled)
        if self.config.kiosk.template_id:
            self.library.set_active(self.config.kiosk.template_id)

        self.apply_chroma_key = self.config.chroma_key.enabled
        self._captures: List[StillImage] = []

    # ------------------------------------------------------------
    # Session
    # ------------------------------------------------------------

    async def start_session(
        self,
        prefs: Optional[SessionPreferences] = None,
        safe_mode: Optional[bool] = None,
    ) -> NegotiationResult:
        """
        Start (or restart) the camera.

        Without explicit preferences the configured ones are used, with the
        enumerated default device filling in when none is configured. Kiosk
        configurations start in safe mode.
        """
        if prefs is None:
            prefs = self.config.video.preferences()
            if prefs.device_id is None and self._controller.selected_device_id is not None:
                prefs = SessionPreferences(
                    device_id=self._controller.selected_device_id,
                    resolution=prefs.resolution,
                    ignore_device_id=prefs.ignore_device_id,
                    minimal_constraints=prefs.minimal_constraints,
                )
        if safe_mode is None:
            safe_mode = self.config.kiosk.enabled and self.config.kiosk.safe_mode

        result = await self._controller.start_session(prefs, safe_mode=safe_mode)
        if result.success:
            logger.info(f"Session live via tier {int(result.tier)} ({result.attempted[-1]})")
        elif not result.cancelled:
            logger.error(f"Session start failed: {result.error_message}")
        return result

    def stop_session(self) -> None:
        """Release the camera. Any drag in progress ends with the session."""
        self.editor.cancel_drag()
        self._controller.stop()

    def shutdown(self) -> None:
        """Teardown: release the camera and end any drag in progress."""
        self.editor.cancel_drag()
        self._controller.stop()

    async def enumerate_devices(self) -> List[DeviceInfo]:
        return await self._controller.enumerate_devices()

    async def run_basic_test(self) -> Optional[TrackSettings]:
        return await self._controller.run_basic_test()

    @property
    def session(self) -> CaptureSession:
        return self._controller.session

    @property
    def controller(self) -> AcquisitionController:
        return self._controller

    # ------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------

    def capture_still(self, apply_chroma_key: Optional[bool] = None) -> CaptureResult:
        """
        Capture the current frame and append it to the capture list.

        Args:
            apply_chroma_key: Key out the green background; defaults to the
                orchestrator's current toggle

        Returns:
            CaptureResult; on failure nothing is appended
        """
        if apply_chroma_key is None:
            apply_chroma_key = self.apply_chroma_key

        sink = self._controller.sink
        if not self._controller.session.is_streaming or sink is None:
            return self._capture_failed(CaptureUnavailable("Camera not ready"))

        frame = sink.read_frame()
        if frame is None:
            return self._capture_failed(CaptureUnavailable("Camera not ready"))

        try:
            still = StillImage(data=self._codec.encode(frame), mime_type=self._codec.mime_type)
        except RasterError as e:
            return self._capture_failed(CaptureUnavailable(f"capture encoding failed: {e}"))

        if apply_chroma_key:
            try:
                still = self._compositor.apply(still)
            except CompositingFailed as e:
                return self._capture_failed(e)

        self._captures.append(still)
        logger.info(
            f"Capture {len(self._captures)} stored"
            + (" (chroma keyed)" if still.chroma_keyed else "")
        )
        return CaptureResult(still=still)

    def _capture_failed(self, error: PhotoboothError) -> CaptureResult:
        logger.error(f"capture processing failed: {error}")
        return CaptureResult(success=False, error=error)

    @property
    def captures(self) -> Tuple[StillImage, ...]:
        return tuple(self._captures)

    def reset_captures(self) -> None:
        self._captures.clear()
        logger.info("Captures cleared")

    # ------------------------------------------------------------
    # Template slots
    # ------------------------------------------------------------

    def slot_assignments(
        self,
        template: Optional[Template] = None,
    ) -> List[Tuple[Frame, Optional[StillImage]]]:
        """Pair each frame of the template with the still at the same index."""
        template = template or self.library.active_template
        if template is None:
            return []
        return [
            (frame, self._captures[idx] if idx < len(self._captures) else None)
            for idx, frame in enumerate(template.frames)
        ]

    def next_slot_index(self, template: Optional[Template] = None) -> Optional[int]:
        """Index of the next frame to fill, or None when the template is full."""
        template = template or self.library.active_template
        if template is None or len(self._captures) >= len(template.frames):
            return None
        return len(self._captures)

    def is_complete(self, template: Optional[Template] = None) -> bool:
        template = template or self.library.active_template
        return (
            template is not None
            and len(template.frames) > 0
            and len(self._captures) >= len(template.frames)
        )
