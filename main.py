#!/usr/bin/env python3
"""
Photobooth

Main entry point for manual capture and unattended kiosk sessions.

Usage:
    python main.py [--config CONFIG_PATH] [--device DEVICE_ID] [--kiosk]

Keyboard Controls:
    SPACE - Capture a still
    G     - Toggle green-screen removal
    S     - Stop / restart the camera
    B     - Run a basic camera probe
    Q     - Quit

Captured stills are written as PNG files to the output directory on exit.
"""

from __future__ import annotations

import argparse
import asyncio
import queue
import sys
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
from loguru import logger
from pynput import keyboard

from photobooth.config import PhotoboothConfig, load_config
from photobooth.core.contracts import CaptureSession
from photobooth.capture.opencv_host import OpenCVMediaHost, OpenCVRenderSink
from photobooth.pipeline.orchestrator import PhotoboothOrchestrator
from photobooth.templates.presets import find_export_preset, resolve_export_size


# ============================================================
# LOGGING CONFIGURATION
# ============================================================

def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """Configure logging."""
    logger.remove()  # Remove default handler

    # Console output with colors
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
        colorize=True,
    )

    # File output
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {module}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )


# ============================================================
# KEYBOARD INPUT HANDLER
# ============================================================

class KeyboardHandler:
    """
    Turns key presses into commands.

    pynput calls back on its own thread, so commands are queued and drained
    by the event loop.
    """

    KEYMAP = {
        " ": "capture",
        "g": "toggle_chroma",
        "s": "toggle_session",
        "b": "probe",
        "q": "quit",
    }

    def __init__(self):
        self.commands: "queue.Queue[str]" = queue.Queue()

    def on_press(self, key):
        """Handle key press events."""
        if key == keyboard.Key.space:
            self.commands.put("capture")
            return
        char = getattr(key, "char", None)
        if char and char.lower() in self.KEYMAP:
            self.commands.put(self.KEYMAP[char.lower()])

    def drain(self):
        while True:
            try:
                yield self.commands.get_nowait()
            except queue.Empty:
                return


# ============================================================
# OUTPUT RENDERER
# ============================================================

class PreviewRenderer:
    """Shows the live preview with a session status overlay."""

    def __init__(self, window_name: str = "Photobooth"):
        self.window_name = window_name
        cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)

    def render(
        self,
        frame: Optional[np.ndarray],
        session: CaptureSession,
        capture_count: int,
        slots: int,
        chroma_key: bool,
    ):
        """Render frame with overlay information."""
        if frame is None:
            display_frame = np.zeros((480, 640, 3), dtype=np.uint8)
        else:
            # Convert RGB to BGR for OpenCV display
            display_frame = cv2.cvtColor(frame, cv2.COLOR_RGB2BGR)

        self._draw_info_overlay(display_frame, session, capture_count, slots, chroma_key)
        cv2.imshow(self.window_name, display_frame)

    def _draw_info_overlay(
        self,
        frame: np.ndarray,
        session: CaptureSession,
        capture_count: int,
        slots: int,
        chroma_key: bool,
    ):
        h, w = frame.shape[:2]

        overlay = frame.copy()
        cv2.rectangle(overlay, (10, 10), (420, 130), (0, 0, 0), -1)
        cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

        if session.is_streaming:
            color = (0, 255, 0)
        elif session.last_error is not None:
            color = (0, 0, 255)
        else:
            color = (0, 200, 255)

        resolution = (
            f"{session.resolution.width}x{session.resolution.height}"
            if session.resolution else "n/a"
        )
        lines = [
            f"State: {session.state.value}  Tier: {int(session.active_tier) if session.active_tier else '-'}",
            f"Path: {session.fallback_path or '-'}  Res: {resolution}",
            f"Captures: {capture_count}/{slots}  Chroma: {'ON' if chroma_key else 'off'}",
        ]
        if session.last_error is not None:
            lines.append(f"Error: {str(session.last_error)[:48]}")

        for i, text in enumerate(lines):
            cv2.putText(
                frame, text, (20, 35 + i * 22),
                cv2.FONT_HERSHEY_SIMPLEX, 0.55, color, 1
            )

        help_text = "SPACE:Capture  G:Chroma  S:Stop/Start  B:Probe  Q:Quit"
        cv2.putText(
            frame, help_text, (10, h - 10),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, (200, 200, 200), 1
        )

    def close(self):
        cv2.destroyAllWindows()


# ============================================================
# MAIN APPLICATION
# ============================================================

class PhotoboothApp:
    """Main application class."""

    def __init__(self, config: PhotoboothConfig, safe_mode: Optional[bool] = None):
        self.config = config
        self.safe_mode = safe_mode
        self.host = OpenCVMediaHost(
            max_devices=config.video.max_devices,
            max_failed_reads=config.video.max_failed_reads,
        )
        self.sink = OpenCVRenderSink()
        self.booth = PhotoboothOrchestrator(self.host, self.sink, config)
        self.keyboard_handler = KeyboardHandler()
        self._running = False

    async def list_devices(self):
        devices = await self.booth.enumerate_devices()
        if not devices:
            logger.warning("No cameras found")
        for device in devices:
            logger.info(f"  {device.device_id}: {device.label}")

    async def run(self):
        """Run the main application loop."""
        logger.info("Starting Photobooth" + (" (kiosk)" if self.config.kiosk.enabled else ""))
        logger.info("Press SPACE to capture, Q to quit")

        await self.booth.enumerate_devices()
        result = await self.booth.start_session(safe_mode=self.safe_mode)
        if not result.success:
            logger.error(f"Failed to start camera: {result.error_message}")
            return

        renderer = PreviewRenderer()
        listener = keyboard.Listener(on_press=self.keyboard_handler.on_press)
        listener.start()

        self._running = True
        try:
            while self._running:
                for command in self.keyboard_handler.drain():
                    await self._handle_command(command)

                template = self.booth.library.active_template
                frame = self.sink.read_frame() if self.booth.session.is_streaming else None
                renderer.render(
                    frame,
                    self.booth.session,
                    capture_count=len(self.booth.captures),
                    slots=len(template.frames) if template else 0,
                    chroma_key=self.booth.apply_chroma_key,
                )

                key = cv2.waitKey(1) & 0xFF
                if key == ord("q"):
                    break

                # Give health polls and recovery a turn
                await asyncio.sleep(0.01)

        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self._running = False
            listener.stop()
            self.booth.shutdown()
            renderer.close()
            self._save_captures()
            logger.info("Photobooth stopped")

    async def _handle_command(self, command: str):
        if command == "quit":
            self._running = False
        elif command == "capture":
            result = self.booth.capture_still()
            if not result.success:
                logger.warning(f"Capture failed: {result.error_message}")
            elif self.booth.is_complete():
                logger.info("All template frames filled")
        elif command == "toggle_chroma":
            self.booth.apply_chroma_key = not self.booth.apply_chroma_key
            logger.info(f"Chroma key {'on' if self.booth.apply_chroma_key else 'off'}")
        elif command == "toggle_session":
            if self.booth.session.is_streaming:
                self.booth.stop_session()
            else:
                await self.booth.start_session(safe_mode=self.safe_mode)
        elif command == "probe":
            await self.booth.run_basic_test()

    def _save_captures(self):
        captures = self.booth.captures
        if not captures:
            return
        out_dir = Path(self.config.output.directory)
        out_dir.mkdir(parents=True, exist_ok=True)
        for idx, still in enumerate(captures, start=1):
            path = out_dir / f"capture_{idx:02d}.png"
            path.write_bytes(still.data)
        logger.info(f"Saved {len(captures)} capture(s) to {out_dir}")

        template = self.booth.library.active_template
        preset = find_export_preset(self.config.kiosk.export_preset)
        width, height = resolve_export_size(template, preset)
        logger.info(
            f"Layout {template.name if template else '-'}: {len(captures)} still(s), "
            f"export {preset.label} at {width}x{height}"
        )


# ============================================================
# ENTRY POINT
# ============================================================

def build_config(args: argparse.Namespace) -> PhotoboothConfig:
    """Load the config file and apply command-line overrides."""
    default_path = Path(__file__).parent / "config" / "default.yaml"
    config = load_config(args.config or (str(default_path) if default_path.exists() else None))

    if args.device is not None:
        config.video.device_id = args.device
    if args.low_res:
        config.video.resolution = "low"
    if args.ignore_device:
        config.video.ignore_device_id = True
    if args.minimal:
        config.video.minimal_constraints = True
    if args.kiosk:
        config.kiosk.enabled = True
    if args.chroma_key:
        config.chroma_key.enabled = True
    if args.output:
        config.output.directory = args.output
    if args.log_level:
        config.logging.level = args.log_level
    if args.log_file:
        config.logging.file = args.log_file
    return config


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Photobooth capture",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("--config", "-c", type=str, default=None,
                        help="Path to configuration file")
    parser.add_argument("--device", "-d", type=str, default=None,
                        help="Camera device id (index)")
    parser.add_argument("--low-res", action="store_true",
                        help="Prefer ~640x480 instead of ~1280x720")
    parser.add_argument("--ignore-device", action="store_true",
                        help="Never pin a device id in constraints")
    parser.add_argument("--minimal", action="store_true",
                        help="Use the minimal unconstrained request")
    parser.add_argument("--kiosk", action="store_true",
                        help="Kiosk mode: safe-mode start, editing disabled")
    parser.add_argument("--safe-mode", action="store_true",
                        help="Start unconstrained and retry once if the camera drops")
    parser.add_argument("--chroma-key", action="store_true",
                        help="Remove green-screen background from captures")
    parser.add_argument("--output", "-o", type=str, default=None,
                        help="Directory for captured stills")
    parser.add_argument("--list-devices", action="store_true",
                        help="List cameras and exit")
    parser.add_argument("--log-level", type=str, default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: from config, INFO)")
    parser.add_argument("--log-file", type=str, default=None,
                        help="Log file path")

    args = parser.parse_args()
    config = build_config(args)

    setup_logging(config.logging.level, config.logging.file)

    app = PhotoboothApp(config, safe_mode=True if args.safe_mode else None)
    if args.list_devices:
        asyncio.run(app.list_devices())
    else:
        asyncio.run(app.run())


if __name__ == "__main__":
    main()
