"""
Deployment configuration for Pi Vision.

Reads the JSON file describing the team, NetworkTables mode and cameras:

    {
        "team": <team number>,
        "ntmode": <"client" or "server", "client" if unspecified>,
        "cameras": [
            {
                "name": <camera name>,
                "path": <path, e.g. "/dev/video0">,
                "pixel format": <"MJPEG", "YUYV", etc>,   // optional
                "width": <video mode width>,              // optional
                "height": <video mode height>,            // optional
                "fps": <video mode fps>,                  // optional
                "brightness": <percentage brightness>,    // optional
                "white balance": <"auto", "hold", value>, // optional
                "exposure": <"auto", "hold", value>,      // optional
                "properties": [{"name": ..., "value": ...}],  // optional
                "stream": {"properties": [...]}           // optional
            }
        ],
        "switched cameras": [                             // optional
            {
                "name": <virtual camera name>,
                "key": <network table key used for selection>
            }
        ]
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraConfig:
    """One physical camera. settings holds the whole JSON object."""
    name: str
    path: str
    settings: dict[str, Any] = field(default_factory=dict, compare=False)
    stream: dict[str, Any] | None = field(default=None, compare=False)


@dataclass(frozen=True)
class SwitchedCameraConfig:
    """A virtual camera whose source is picked by a telemetry key."""
    name: str
    key: str


@dataclass(frozen=True)
class DeploymentConfig:
    """Parsed deployment file."""
    team: int
    server: bool
    cameras: tuple[CameraConfig, ...]
    switched_cameras: tuple[SwitchedCameraConfig, ...] = ()


def _parse_error(config_file: str, message: str) -> ConfigError:
    return ConfigError(f"config error in '{config_file}': {message}")


def _read_string(obj: dict, key: str) -> str | None:
    value = obj.get(key)
    if isinstance(value, str):
        return value
    return None


def read_camera_config(obj: Any, config_file: str) -> CameraConfig:
    """
    Read a single camera entry.

    Raises:
        ConfigError: If name or path is missing
    """
    if not isinstance(obj, dict):
        raise _parse_error(config_file, "camera entry must be JSON object")

    name = _read_string(obj, "name")
    if name is None:
        raise _parse_error(config_file, "could not read camera name")

    path = _read_string(obj, "path")
    if path is None:
        raise _parse_error(config_file, f"camera '{name}': could not read path")

    stream = obj.get("stream")
    if stream is not None and not isinstance(stream, dict):
        raise _parse_error(config_file, f"camera '{name}': stream must be JSON object")

    return CameraConfig(name=name, path=path, settings=dict(obj), stream=stream)


def read_switched_camera_config(obj: Any, config_file: str) -> SwitchedCameraConfig:
    """
    Read a single switched camera entry.

    Raises:
        ConfigError: If name or key is missing
    """
    if not isinstance(obj, dict):
        raise _parse_error(config_file, "switched camera entry must be JSON object")

    name = _read_string(obj, "name")
    if name is None:
        raise _parse_error(config_file, "could not read switched camera name")

    key = _read_string(obj, "key")
    if key is None:
        raise _parse_error(config_file, f"switched camera '{name}': could not read key")

    return SwitchedCameraConfig(name=name, key=key)


def parse_config(top: Any, config_file: str = "<memory>") -> DeploymentConfig:
    """
    Validate already-decoded JSON.

    Args:
        top: Decoded JSON document
        config_file: File name used in error messages

    Returns:
        DeploymentConfig

    Raises:
        ConfigError: On any missing or malformed required field
    """
    if not isinstance(top, dict):
        raise _parse_error(config_file, "must be JSON object")

    # Team number
    team = top.get("team")
    if isinstance(team, bool) or not isinstance(team, int):
        raise _parse_error(config_file, "could not read team number")

    # NetworkTables mode (optional)
    server = False
    if "ntmode" in top:
        mode = str(top["ntmode"])
        if mode.lower() == "client":
            server = False
        elif mode.lower() == "server":
            server = True
        else:
            # Not fatal, keep running as a client
            logger.error(f"config error in '{config_file}': could not understand ntmode value '{mode}'")

    # Cameras
    cameras = top.get("cameras")
    if not isinstance(cameras, list):
        raise _parse_error(config_file, "could not read cameras")
    camera_configs = tuple(read_camera_config(camera, config_file) for camera in cameras)

    # Switched cameras (optional)
    switched = top.get("switched cameras", [])
    if not isinstance(switched, list):
        raise _parse_error(config_file, "could not read switched cameras")
    switched_configs = tuple(read_switched_camera_config(camera, config_file) for camera in switched)

    return DeploymentConfig(
        team=team,
        server=server,
        cameras=camera_configs,
        switched_cameras=switched_configs,
    )


def read_config(config_file: str | Path) -> DeploymentConfig:
    """
    Read and validate a deployment file.

    Args:
        config_file: Path to the JSON file

    Returns:
        DeploymentConfig

    Raises:
        ConfigError: If the file cannot be read, is not JSON, or is malformed
    """
    config_file = str(config_file)
    try:
        with open(config_file, encoding="utf-8") as f:
            top = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"could not open '{config_file}': {e}")

    return parse_config(top, config_file)
