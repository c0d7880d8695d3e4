"""
Capture session facade.
"""

from .orchestrator import PhotoboothOrchestrator
