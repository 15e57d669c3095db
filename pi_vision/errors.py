"""
Exception types for Pi Vision.

Startup errors (ConfigError, CameraError, TelemetryError) end the process.
Frame and geometry errors are absorbed by the vision loop.
"""


class VisionError(Exception):
    """Base class for Pi Vision errors."""
    pass


class ConfigError(VisionError):
    """Deployment configuration is missing or malformed."""
    pass


class CameraError(VisionError):
    """A camera device could not be opened."""
    pass


class TelemetryError(VisionError):
    """The telemetry backend could not be started."""
    pass


class FrameError(VisionError):
    """The current frame cannot be processed and must be skipped."""
    pass


class InvalidFrame(FrameError):
    """Frame is missing or has zero area."""
    pass


class GeometryDegenerate(VisionError):
    """A contour has too few points or a zero-area convex hull."""
    pass


class MomentDegenerate(VisionError):
    """A contour has a zero zeroth-order moment, so no centroid exists."""
    pass
