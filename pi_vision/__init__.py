"""
Pi Vision - single-camera target detection for a robot coprocessor.

This package finds a colored, non-convex target in each camera frame and
publishes the target count and its offset from the image center to
NetworkTables.
"""

__version__ = "0.1.0"
__author__ = "Pi Vision Team"

from .main import main

__all__ = ["main"]
