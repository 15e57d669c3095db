"""
Camera startup for Pi Vision.
Opens each configured device with OpenCV and applies its video mode.
"""

import logging
from dataclasses import dataclass

import cv2

from .camera_config import CameraConfig
from .errors import CameraError

logger = logging.getLogger(__name__)

# Numeric settings that map straight onto capture properties
NUMERIC_PROPERTIES = {
    "width": cv2.CAP_PROP_FRAME_WIDTH,
    "height": cv2.CAP_PROP_FRAME_HEIGHT,
    "fps": cv2.CAP_PROP_FPS,
    "brightness": cv2.CAP_PROP_BRIGHTNESS,
    "exposure": cv2.CAP_PROP_EXPOSURE,
}

# V4L2 control names used in the "properties" list
CONTROL_PROPERTIES = {
    "brightness": cv2.CAP_PROP_BRIGHTNESS,
    "contrast": cv2.CAP_PROP_CONTRAST,
    "saturation": cv2.CAP_PROP_SATURATION,
    "hue": cv2.CAP_PROP_HUE,
    "gain": cv2.CAP_PROP_GAIN,
    "sharpness": cv2.CAP_PROP_SHARPNESS,
    "gamma": cv2.CAP_PROP_GAMMA,
    "backlight_compensation": cv2.CAP_PROP_BACKLIGHT,
    "white_balance_temperature_auto": cv2.CAP_PROP_AUTO_WB,
    "white_balance_automatic": cv2.CAP_PROP_AUTO_WB,
    "white_balance_temperature": cv2.CAP_PROP_WB_TEMPERATURE,
    "exposure_auto": cv2.CAP_PROP_AUTO_EXPOSURE,
    "auto_exposure": cv2.CAP_PROP_AUTO_EXPOSURE,
    "exposure_absolute": cv2.CAP_PROP_EXPOSURE,
    "exposure_time_absolute": cv2.CAP_PROP_EXPOSURE,
    "focus_auto": cv2.CAP_PROP_AUTOFOCUS,
    "focus_automatic_continuous": cv2.CAP_PROP_AUTOFOCUS,
    "focus_absolute": cv2.CAP_PROP_FOCUS,
    "zoom_absolute": cv2.CAP_PROP_ZOOM,
}

# Config pixel format names to V4L2 fourcc codes
PIXEL_FORMATS = {
    "MJPEG": "MJPG",
    "YUYV": "YUYV",
    "RGB565": "RGBP",
    "BGR": "BGR3",
    "GRAY": "GREY",
}

# Keys handled outside the numeric property table
RESERVED_KEYS = {"name", "path", "stream", "pixel format", "white balance", "properties"}


@dataclass
class CameraHandle:
    """An opened camera and the config it came from."""
    config: CameraConfig
    capture: cv2.VideoCapture

    @property
    def name(self) -> str:
        return self.config.name

    def release(self) -> None:
        self.capture.release()


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _set_property(capture: cv2.VideoCapture, camera: CameraConfig, key: str, prop: int, value) -> None:
    if not capture.set(prop, float(value)):
        logger.warning(f"Camera '{camera.name}': driver rejected {key}={value}")


def apply_white_balance(capture: cv2.VideoCapture, camera: CameraConfig, value) -> None:
    """
    Apply the "white balance" setting.

    "auto" turns on automatic white balance, "hold" freezes the current one
    and a number sets a fixed color temperature in kelvin.
    """
    if _is_number(value):
        _set_property(capture, camera, "white balance", cv2.CAP_PROP_AUTO_WB, 0)
        _set_property(capture, camera, "white balance", cv2.CAP_PROP_WB_TEMPERATURE, value)
    elif isinstance(value, str) and value.lower() == "auto":
        _set_property(capture, camera, "white balance", cv2.CAP_PROP_AUTO_WB, 1)
    elif isinstance(value, str) and value.lower() == "hold":
        _set_property(capture, camera, "white balance", cv2.CAP_PROP_AUTO_WB, 0)
    else:
        logger.warning(f"Camera '{camera.name}': unsupported white balance {value!r}")


def apply_properties(capture: cv2.VideoCapture, camera: CameraConfig, properties) -> None:
    """
    Apply the raw "properties" list of {"name": ..., "value": ...} entries.

    Names are V4L2 control names. Unknown controls and non-numeric values
    are logged and skipped.
    """
    if not isinstance(properties, list):
        logger.warning(f"Camera '{camera.name}': properties must be a list, ignored")
        return

    for entry in properties:
        if not isinstance(entry, dict) or "name" not in entry or "value" not in entry:
            logger.warning(f"Camera '{camera.name}': malformed property {entry!r}, ignored")
            continue
        name = entry["name"]
        value = entry["value"]
        prop = CONTROL_PROPERTIES.get(name)
        if prop is None:
            logger.debug(f"Camera '{camera.name}': property '{name}' not supported, ignored")
        elif isinstance(value, bool):
            _set_property(capture, camera, name, prop, int(value))
        elif _is_number(value):
            _set_property(capture, camera, name, prop, value)
        else:
            logger.debug(f"Camera '{camera.name}': property {name}={value!r} is not numeric, ignored")


def apply_settings(capture: cv2.VideoCapture, camera: CameraConfig) -> None:
    """
    Apply the video mode and properties from the camera config.

    Settings the driver does not accept are logged and skipped.
    """
    settings = camera.settings

    pixel_format = settings.get("pixel format")
    fourcc = PIXEL_FORMATS.get(pixel_format.upper()) if isinstance(pixel_format, str) else None
    if fourcc is not None:
        capture.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*fourcc))
    elif pixel_format is not None:
        logger.warning(f"Camera '{camera.name}': unsupported pixel format {pixel_format!r}")

    for key, prop in NUMERIC_PROPERTIES.items():
        value = settings.get(key)
        if value is None:
            continue
        if _is_number(value):
            _set_property(capture, camera, key, prop, value)
        else:
            # "auto" / "hold" are left to the driver
            logger.debug(f"Camera '{camera.name}': leaving {key}={value!r} to the driver")

    if settings.get("white balance") is not None:
        apply_white_balance(capture, camera, settings["white balance"])

    # Raw properties go last so they override the convenience settings
    if settings.get("properties") is not None:
        apply_properties(capture, camera, settings["properties"])

    for key in settings:
        if key not in RESERVED_KEYS and key not in NUMERIC_PROPERTIES:
            logger.debug(f"Camera '{camera.name}': setting '{key}' not supported, ignored")


def start_camera(camera: CameraConfig) -> CameraHandle:
    """
    Open a camera and configure it.

    Args:
        camera: Camera config

    Returns:
        CameraHandle for the opened device

    Raises:
        CameraError: If the device cannot be opened
    """
    logger.info(f"Starting camera '{camera.name}' on {camera.path}")
    capture = cv2.VideoCapture(camera.path)
    if not capture.isOpened():
        raise CameraError(f"could not open camera '{camera.name}' on {camera.path}")

    apply_settings(capture, camera)

    actual_width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
    actual_height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
    logger.info(f"Camera '{camera.name}' opened: {actual_width}x{actual_height}")

    return CameraHandle(config=camera, capture=capture)


def release_cameras(cameras) -> None:
    """Release every camera, logging failures instead of stopping."""
    for camera in cameras:
        try:
            camera.release()
        except cv2.error as e:
            logger.error(f"Error releasing camera '{camera.name}': {e}")
