"""
Pipeline threads for Pi Vision.
Runs the vision loop and the switched camera router.
"""

import logging
import queue
import threading
import time

from . import config
from .errors import FrameError
from .routing import CameraRouter
from .sources import FrameSource
from .telemetry import TelemetryStore
from .vision import TargetPipeline

logger = logging.getLogger(__name__)


def vision_thread_fn(
    stop_event: threading.Event,
    source: FrameSource,
    vision: TargetPipeline,
    store: TelemetryStore,
) -> int:
    """
    Vision thread: reads frames, runs the pipeline and publishes each result.

    This thread:
    - Checks for shutdown only at the top of the loop
    - Blocks on source.next_frame() for every frame
    - Skips frames that raise FrameError
    - Publishes one result per processed frame before fetching the next
    - Stops when the source runs out of frames

    Args:
        stop_event: Event to signal thread shutdown
        source: Frame source to read from
        vision: Target pipeline
        store: Telemetry store receiving results

    Returns:
        Number of frames published
    """
    logger.info("Vision thread started")

    published = 0
    frame_count = 0
    target_frames = 0
    last_log_time = time.time()

    try:
        while not stop_event.is_set():
            try:
                frame = source.next_frame()
            except StopIteration:
                logger.info("Frame source exhausted")
                break
            except FrameError as e:
                logger.warning(f"Skipping frame: {e}")
                continue

            try:
                result = vision.process(frame)
            except FrameError as e:
                logger.warning(f"Skipping frame: {e}")
                continue

            store.publish(result)
            published += 1
            frame_count += 1
            if result.count == 1:
                target_frames += 1

            # Log processing rate periodically
            current_time = time.time()
            if current_time - last_log_time >= config.STATS_LOG_INTERVAL:
                elapsed = current_time - last_log_time
                logger.debug(
                    f"Processing rate: {frame_count / elapsed:.1f} fps, "
                    f"single target in {target_frames}/{frame_count} frames, "
                    f"last count={result.count}"
                )
                frame_count = 0
                target_frames = 0
                last_log_time = current_time

    finally:
        logger.info("Vision thread stopped")

    return published


def router_thread_fn(stop_event: threading.Event, router: CameraRouter) -> None:
    """
    Router thread: the only writer of the switched camera routing table.

    Args:
        stop_event: Event to signal thread shutdown
        router: Router whose message queue is drained
    """
    logger.info("Router thread started")

    try:
        while not stop_event.is_set():
            try:
                selection = router.messages.get(timeout=config.QUEUE_GET_TIMEOUT)
            except queue.Empty:
                continue
            router.apply(selection)
    finally:
        logger.info("Router thread stopped")


def start_vision_thread(
    stop_event: threading.Event,
    source: FrameSource,
    vision: TargetPipeline,
    store: TelemetryStore,
) -> threading.Thread:
    """
    Start the vision thread.

    Returns:
        The started thread object
    """
    thread = threading.Thread(
        target=vision_thread_fn,
        args=(stop_event, source, vision, store),
        name="VisionThread",
        daemon=True,
    )
    thread.start()
    return thread


def start_router_thread(stop_event: threading.Event, router: CameraRouter) -> threading.Thread:
    """
    Start the router thread.

    Returns:
        The started thread object
    """
    thread = threading.Thread(
        target=router_thread_fn,
        args=(stop_event, router),
        name="RouterThread",
        daemon=True,
    )
    thread.start()
    return thread
