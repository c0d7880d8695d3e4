"""
Photobooth capture core.

Captures a sequence of stills from a live camera, optionally keys out a
green-screen background, and places the stills into template frames.

Components:
1. Acquisition controller (tiered fallback negotiation, health monitoring,
   one-shot safe-mode recovery)
2. Chroma-key compositor
3. Template geometry model and editor
4. Capture session facade
"""

__version__ = "0.1.0"
__author__ = "Photobooth Team"
