import numpy as np
import pytest

from pi_vision import config

# BGR colour that converts to HSV (80, 191, 200), inside the default threshold
TARGET_BGR = (150, 200, 50)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests that run threads or the CLI")


def blank_frame(width=config.WORKING_WIDTH, height=config.WORKING_HEIGHT):
    return np.zeros((height, width, 3), dtype=np.uint8)


def paint_rect(frame, x, y, width, height, color=TARGET_BGR):
    frame[y:y + height, x:x + width] = color
    return frame


def paint_cross(frame, cx, cy, size=41, thickness=9, color=TARGET_BGR):
    """Plus-shaped blob centered on pixel (cx, cy). size and thickness are odd."""
    half = size // 2
    arm = thickness // 2
    frame[cy - half:cy + half + 1, cx - arm:cx + arm + 1] = color
    frame[cy - arm:cy + arm + 1, cx - half:cx + half + 1] = color
    return frame


def paint_notched_square(frame, x, y, size=40, notch_width=20, notch_depth=22, color=TARGET_BGR):
    """Square with a rectangular notch cut into the middle of its top edge."""
    paint_rect(frame, x, y, size, size, color)
    notch_x = x + (size - notch_width) // 2
    frame[y:y + notch_depth, notch_x:notch_x + notch_width] = 0
    return frame


def polygon(points):
    return np.array(points, dtype=np.int32).reshape(-1, 1, 2)


@pytest.fixture
def frame():
    return blank_frame()


@pytest.fixture
def l_contour():
    """L shape, 40x40 bounding box, arms 8px thick. Solidity is about 49%."""
    return polygon([(0, 0), (0, 39), (39, 39), (39, 32), (7, 32), (7, 0)])
