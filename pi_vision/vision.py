"""
Target detection pipeline for Pi Vision.
Resizes a frame, thresholds it in HSV, finds contours, filters them by shape
and reports the target count and its offset from the image center.
"""

import logging
from dataclasses import dataclass

import cv2
import numpy as np

from . import config
from .config import FilterCriteria, HsvRange, VisionSettings
from .errors import GeometryDegenerate, InvalidFrame, MomentDegenerate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetResult:
    """
    Per-frame detection result.

    center and offset are in working-resolution pixels and are (0, 0)
    unless exactly one target was found.
    """
    count: int
    center: tuple[float, float] = (0.0, 0.0)
    offset: tuple[float, float] = (0.0, 0.0)


NO_TARGET = TargetResult(count=0)


@dataclass
class FrameAnalysis:
    """Intermediate outputs of one pipeline run, kept for debugging and annotation."""
    resized: np.ndarray
    mask: np.ndarray
    contours: list[np.ndarray]
    filtered: list[np.ndarray]
    result: TargetResult


def resize_image(frame: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Scale an image to an exact size with bilinear interpolation.

    Args:
        frame: BGR image
        width: Output width in pixels
        height: Output height in pixels

    Returns:
        Resized BGR image

    Raises:
        InvalidFrame: If the frame is missing, has zero area or is not 3-channel BGR
    """
    if frame is None or frame.ndim < 2 or frame.shape[0] == 0 or frame.shape[1] == 0:
        raise InvalidFrame("frame has zero area")

    if frame.ndim != 3 or frame.shape[2] != 3:
        raise InvalidFrame(f"frame is not a 3-channel BGR image (shape {frame.shape})")

    return cv2.resize(frame, (width, height), interpolation=cv2.INTER_LINEAR)


def hsv_threshold(frame: np.ndarray, hsv_range: HsvRange) -> np.ndarray:
    """
    Segment an image on hue, saturation and value ranges.

    Bounds are inclusive and applied to each channel independently.

    Args:
        frame: BGR image
        hsv_range: Channel bounds on the OpenCV HSV scale

    Returns:
        Single-channel mask, 255 where the pixel is in range and 0 elsewhere
    """
    hsv = cv2.cvtColor(frame, cv2.COLOR_BGR2HSV)
    return cv2.inRange(hsv, hsv_range.lower, hsv_range.upper)


def find_contours(mask: np.ndarray) -> list[np.ndarray]:
    """
    Find every region boundary in a mask, nested ones included.

    Args:
        mask: Binary single-channel image

    Returns:
        List of contours, each an (N, 1, 2) int32 point array
    """
    contours, _ = cv2.findContours(mask, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)
    return list(contours)


def contour_solidity(contour: np.ndarray, area: float) -> float:
    """
    Percentage of the convex hull covered by the contour.

    Raises:
        GeometryDegenerate: If the convex hull has zero area
    """
    hull = cv2.convexHull(contour)
    hull_area = cv2.contourArea(hull)
    if hull_area <= 0:
        raise GeometryDegenerate("convex hull has zero area")
    return 100.0 * area / hull_area


def passes_filter(contour: np.ndarray, criteria: FilterCriteria) -> bool:
    """
    Check a single contour against every shape criterion.

    Checks run cheapest first and stop at the first failure: bounding box
    size, area, perimeter, solidity, vertex count, aspect ratio and
    finally concavity (convex outlines are rejected).

    Args:
        contour: Point array as returned by find_contours
        criteria: Filter thresholds

    Returns:
        True if the contour looks like a target
    """
    if len(contour) < 3:
        return False

    # Filter by width & height
    _, _, width, height = cv2.boundingRect(contour)
    if width < criteria.min_width or height < criteria.min_height:
        return False

    # Filter by area & perimeter
    area = cv2.contourArea(contour)
    if area < criteria.min_area:
        return False
    if cv2.arcLength(contour, True) < criteria.min_perimeter:
        return False

    # Filter by solidity
    try:
        solidity = contour_solidity(contour, area)
    except GeometryDegenerate as e:
        logger.debug(f"Rejecting contour: {e}")
        return False
    low, high = criteria.solidity
    if solidity < low or solidity > high:
        return False

    # Filter by number of vertices
    if len(contour) < criteria.min_vertex_count:
        return False

    # Filter by ratio
    if width / height < criteria.min_ratio:
        return False

    # Filter by concavity
    if cv2.isContourConvex(contour):
        return False

    return True


def filter_contours(contours: list[np.ndarray], criteria: FilterCriteria) -> list[np.ndarray]:
    """Keep the contours that pass every criterion, in their original order."""
    return [contour for contour in contours if passes_filter(contour, criteria)]


def find_center(contour: np.ndarray) -> tuple[float, float]:
    """
    Centroid of a contour from its image moments (M10/M00, M01/M00).

    Raises:
        MomentDegenerate: If the zeroth moment is zero
    """
    m = cv2.moments(contour)
    if m["m00"] == 0:
        raise MomentDegenerate("contour has zero zeroth moment")
    return (m["m10"] / m["m00"], m["m01"] / m["m00"])


def find_offset(center: tuple[float, float], width: int, height: int) -> tuple[float, float]:
    """Signed distance from the image center to a point."""
    return (center[0] - width / 2, center[1] - height / 2)


def select_target(contours: list[np.ndarray], width: int, height: int) -> TargetResult:
    """
    Build the frame result from the filtered contours.

    Only a single match gets a center and offset; zero or several matches
    report (0, 0). A degenerate single match also reports (0, 0).
    """
    count = len(contours)
    if count != 1:
        return TargetResult(count=count)

    try:
        center = find_center(contours[0])
    except MomentDegenerate as e:
        logger.debug(f"No centroid for sole target: {e}")
        return TargetResult(count=count)

    return TargetResult(
        count=count,
        center=center,
        offset=find_offset(center, width, height),
    )


class TargetPipeline:
    """
    Stateless per-frame vision pipeline.

    Each call runs:
    1. Resize to the working resolution
    2. HSV threshold
    3. Contour extraction (all contours, simplified)
    4. Contour filtering
    5. Target selection and offset from center
    """

    def __init__(self, settings: VisionSettings = config.DEFAULT_SETTINGS):
        """
        Initialize the pipeline.

        Args:
            settings: Working resolution, HSV range and filter criteria
        """
        self.settings = settings
        logger.info(
            f"TargetPipeline initialized ({settings.width}x{settings.height}, "
            f"solidity={settings.criteria.solidity})"
        )

    def analyze(self, frame: np.ndarray) -> FrameAnalysis:
        """
        Run every stage and keep the intermediate outputs.

        Args:
            frame: BGR image of any size

        Returns:
            FrameAnalysis for this frame

        Raises:
            InvalidFrame: If the frame has zero area
        """
        settings = self.settings
        resized = resize_image(frame, settings.width, settings.height)
        mask = hsv_threshold(resized, settings.hsv)
        contours = find_contours(mask)
        filtered = filter_contours(contours, settings.criteria)
        result = select_target(filtered, settings.width, settings.height)
        return FrameAnalysis(
            resized=resized,
            mask=mask,
            contours=contours,
            filtered=filtered,
            result=result,
        )

    def process(self, frame: np.ndarray) -> TargetResult:
        """Run the pipeline on one frame and return only the result."""
        return self.analyze(frame).result


def draw_targets(frame: np.ndarray, analysis: FrameAnalysis) -> np.ndarray:
    """
    Draw accepted contours and the target center on a copy of the frame.

    Args:
        frame: Image in working resolution (usually analysis.resized)
        analysis: Output of TargetPipeline.analyze

    Returns:
        Annotated copy of the frame
    """
    annotated = frame.copy()
    cv2.drawContours(annotated, analysis.filtered, -1, config.CONTOUR_COLOR, 1)

    result = analysis.result
    if result.count == 1:
        center = (int(round(result.center[0])), int(round(result.center[1])))
        cv2.drawMarker(
            annotated,
            center,
            config.CENTER_COLOR,
            cv2.MARKER_CROSS,
            config.CENTER_MARKER_SIZE,
            1,
        )

    label = f"targets: {result.count}"
    cv2.putText(
        annotated,
        label,
        (5, 15),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.4,
        config.CENTER_COLOR,
        1,
        cv2.LINE_AA,
    )

    return annotated
