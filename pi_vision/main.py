"""
Main entry point for Pi Vision.
Reads the deployment file, starts telemetry and cameras, then runs the
vision thread on the first camera until interrupted.
"""

import argparse
import logging
import sys
import threading

from . import config
from .camera_config import DeploymentConfig, read_config
from .cameras import CameraHandle, release_cameras, start_camera
from .errors import CameraError, ConfigError, TelemetryError
from .pipeline import start_router_thread, start_vision_thread
from .routing import CameraRouter
from .sources import CameraFrameSource
from .telemetry import MemoryTable, NetworkTablesStore, TelemetryStore
from .vision import TargetPipeline

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging to stdout."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Pi Vision - target detection with NetworkTables output",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pi-vision                      (reads /boot/frc.json)
  pi-vision ./frc.json
  pi-vision ./frc.json --local   (no NetworkTables, in-process table)
        """
    )
    parser.add_argument(
        "config_file",
        nargs="?",
        default=config.DEFAULT_CONFIG_FILE,
        help=f"Deployment config file (default: {config.DEFAULT_CONFIG_FILE})"
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help="Publish to an in-process table instead of NetworkTables"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    return parser.parse_args(argv)


def create_store(deployment: DeploymentConfig, local: bool = False) -> TelemetryStore:
    """
    Start the telemetry store.

    Raises:
        TelemetryError: If NetworkTables cannot be started
    """
    if local:
        logger.info("Using in-process telemetry table")
        return MemoryTable()
    return NetworkTablesStore(team=deployment.team, server=deployment.server)


def start_cameras(deployment: DeploymentConfig) -> list[CameraHandle]:
    """
    Open every configured camera.

    Raises:
        CameraError: If any camera fails to open (already opened ones are released)
    """
    cameras = []
    try:
        for camera_config in deployment.cameras:
            cameras.append(start_camera(camera_config))
    except CameraError:
        release_cameras(cameras)
        raise
    return cameras


def start_switched_cameras(
    deployment: DeploymentConfig,
    router: CameraRouter,
    store: TelemetryStore,
) -> None:
    """Register each switched camera and listen on its selector key."""
    for switched in deployment.switched_cameras:
        logger.info(f"Switched camera '{switched.name}' selected by '{switched.key}'")
        router.add_switch(switched.name)
        store.add_listener(switched.key, router.listener_for(switched.name))


def main(argv=None) -> int:
    """
    Main entry point for Pi Vision.

    Returns:
        Exit code (0 for success)
    """
    args = parse_args(argv)
    setup_logging(args.verbose)

    # Read configuration
    try:
        deployment = read_config(args.config_file)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 1

    logger.info("=" * 60)
    logger.info(f"Pi Vision - team {deployment.team}, "
                f"ntmode={'server' if deployment.server else 'client'}")
    logger.info(f"Cameras: {len(deployment.cameras)}, "
                f"switched cameras: {len(deployment.switched_cameras)}")
    logger.info(f"Working resolution: {config.WORKING_WIDTH}x{config.WORKING_HEIGHT}")
    logger.info("=" * 60)

    # Start telemetry
    try:
        store = create_store(deployment, local=args.local)
    except TelemetryError as e:
        logger.error(f"Failed to start telemetry: {e}")
        return 1

    # Start cameras
    try:
        cameras = start_cameras(deployment)
    except CameraError as e:
        logger.error(f"Failed to start cameras: {e}")
        store.close()
        return 1

    stop_event = threading.Event()

    # Start switched cameras
    router = CameraRouter(cameras)
    start_switched_cameras(deployment, router, store)

    threads = [("Router", start_router_thread(stop_event, router))]

    # Start image processing on camera 0 if present
    if cameras:
        source = CameraFrameSource(cameras[0].capture, cameras[0].name)
        vision_thread = start_vision_thread(stop_event, source, TargetPipeline(), store)
        threads.append(("Vision", vision_thread))
    else:
        logger.warning("No cameras configured, vision processing disabled")

    logger.info("All worker threads started")

    # Loop forever
    try:
        while not stop_event.wait(config.MAIN_LOOP_WAIT):
            pass
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        logger.info("Shutting down...")
        stop_event.set()

        for name, thread in threads:
            logger.info(f"Waiting for {name} thread...")
            thread.join(timeout=config.THREAD_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning(f"{name} thread did not stop cleanly")
            else:
                logger.info(f"{name} thread stopped")

        release_cameras(cameras)
        store.close()

    logger.info("Pi Vision shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
