"""
Configuration for the photobooth.

Settings come from a YAML file (see config/default.yaml); any section or key
left out keeps its default. Command-line flags in main.py override the file.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

import yaml
from loguru import logger

from photobooth.core.contracts import ResolutionPreference, SessionPreferences


T = TypeVar("T")


@dataclass
class VideoConfig:
    """Camera negotiation settings."""
    device_id: Optional[str] = None
    resolution: str = "high"          # "high" (~1280x720) | "low" (~640x480)
    ignore_device_id: bool = False
    minimal_constraints: bool = False
    poll_interval: float = 2.0        # seconds between health polls
    max_devices: int = 4              # camera indices probed by the OpenCV host
    max_failed_reads: int = 5         # consecutive failed reads before a track ends

    def __post_init__(self):
        if self.resolution not in ("high", "low"):
            raise ValueError(f"video.resolution must be 'high' or 'low', got {self.resolution!r}")
        if self.device_id is not None:
            self.device_id = str(self.device_id)

    def preferences(self) -> SessionPreferences:
        return SessionPreferences(
            device_id=self.device_id,
            resolution=ResolutionPreference(self.resolution),
            ignore_device_id=self.ignore_device_id,
            minimal_constraints=self.minimal_constraints,
        )


@dataclass
class ChromaKeyConfig:
    enabled: bool = False
    green_min: int = 80
    dominance: int = 30


@dataclass
class KioskConfig:
    enabled: bool = False
    # Kiosk sessions start at the unconstrained tier and recover once
    safe_mode: bool = True
    template_id: Optional[str] = None
    export_preset: str = "2r"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None
    diagnostics_capacity: int = 20


@dataclass
class OutputConfig:
    directory: str = "captures"


@dataclass
class PhotoboothConfig:
    video: VideoConfig = field(default_factory=VideoConfig)
    chroma_key: ChromaKeyConfig = field(default_factory=ChromaKeyConfig)
    kiosk: KioskConfig = field(default_factory=KioskConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> PhotoboothConfig:
        data = data or {}
        return cls(
            video=_section(VideoConfig, data.get("video")),
            chroma_key=_section(ChromaKeyConfig, data.get("chroma_key")),
            kiosk=_section(KioskConfig, data.get("kiosk")),
            logging=_section(LoggingConfig, data.get("logging")),
            output=_section(OutputConfig, data.get("output")),
        )


def _section(cls: Type[T], values: Optional[Dict[str, Any]]) -> T:
    if not values:
        return cls()
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {', '.join(sorted(unknown))}")
    return cls(**{k: v for k, v in values.items() if k in known})


def load_config(path: Optional[str] = None) -> PhotoboothConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: YAML file path, or None for defaults

    Returns:
        PhotoboothConfig; defaults when the file does not exist
    """
    if path is None:
        return PhotoboothConfig()

    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return PhotoboothConfig()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: expected a mapping at the top level")

    logger.info(f"Loaded config from {config_path}")
    return PhotoboothConfig.from_dict(data)
