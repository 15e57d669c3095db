"""
Configuration constants for Pi Vision.
"""

from dataclasses import dataclass, field

# Working resolution for segmentation and filtering
WORKING_WIDTH = 320
WORKING_HEIGHT = 240

# HSV threshold (OpenCV scale: hue 0..180, saturation/value 0..255)
HSV_HUE = (66.0, 100.0)
HSV_SATURATION = (66.0, 240.0)
HSV_VALUE = (123.0, 255.0)

# Contour filter tuning for the target shape
FILTER_MIN_AREA = 20.0
FILTER_MIN_PERIMETER = 20.0
FILTER_MIN_WIDTH = 20.0
FILTER_MIN_HEIGHT = 20.0
FILTER_SOLIDITY = (0.0, 60.0)  # Percent, inclusive
FILTER_MIN_VERTICES = 0.0
FILTER_MIN_RATIO = 0.0

# Telemetry settings
TABLE_NAME = "Pi Vision"
KEY_TARGET_COUNT = "targetCount"
KEY_CENTER_X = "centerX"
KEY_CENTER_Y = "centerY"
KEY_OFFSET_X = "offsetX"
KEY_OFFSET_Y = "offsetY"

# Deployment config file
DEFAULT_CONFIG_FILE = "/boot/frc.json"

# Thread settings
THREAD_JOIN_TIMEOUT = 2.0  # seconds
QUEUE_GET_TIMEOUT = 0.1  # seconds
MAIN_LOOP_WAIT = 10.0  # seconds between main thread wakeups
STATS_LOG_INTERVAL = 5.0  # seconds between processing rate logs
CAMERA_RETRY_DELAY = 0.1  # seconds to wait after a failed read

# Annotation settings
CONTOUR_COLOR = (0, 0, 255)  # Red in BGR
CENTER_COLOR = (0, 255, 0)  # Green in BGR
CENTER_MARKER_SIZE = 10


@dataclass(frozen=True)
class HsvRange:
    """Inclusive [low, high] bounds for each HSV channel."""
    hue: tuple[float, float] = HSV_HUE
    saturation: tuple[float, float] = HSV_SATURATION
    value: tuple[float, float] = HSV_VALUE

    @property
    def lower(self) -> tuple[float, float, float]:
        return (self.hue[0], self.saturation[0], self.value[0])

    @property
    def upper(self) -> tuple[float, float, float]:
        return (self.hue[1], self.saturation[1], self.value[1])


@dataclass(frozen=True)
class FilterCriteria:
    """
    Geometric signature a contour must match to count as a target.

    Solidity is a percentage range, inclusive at both ends.
    """
    min_area: float = FILTER_MIN_AREA
    min_perimeter: float = FILTER_MIN_PERIMETER
    min_width: float = FILTER_MIN_WIDTH
    min_height: float = FILTER_MIN_HEIGHT
    solidity: tuple[float, float] = FILTER_SOLIDITY
    min_vertex_count: float = FILTER_MIN_VERTICES
    min_ratio: float = FILTER_MIN_RATIO


@dataclass(frozen=True)
class VisionSettings:
    """Everything the per-frame pipeline needs, injected as one record."""
    width: int = WORKING_WIDTH
    height: int = WORKING_HEIGHT
    hsv: HsvRange = field(default_factory=HsvRange)
    criteria: FilterCriteria = field(default_factory=FilterCriteria)


DEFAULT_SETTINGS = VisionSettings()
