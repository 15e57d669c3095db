"""
Command-line interface for offline Pi Vision tools.
Run as: python -m pi_vision.cli <command>
"""

import sys
import argparse
from pathlib import Path

import cv2

from . import config
from .camera_config import read_config
from .errors import ConfigError, FrameError
from .sources import ImageFrameSource
from .vision import TargetPipeline, draw_targets


def format_result(result) -> str:
    """One-line summary of a TargetResult."""
    return (f"count={result.count}  "
            f"center=({result.center[0]:.1f}, {result.center[1]:.1f})  "
            f"offset=({result.offset[0]:.1f}, {result.offset[1]:.1f})")


def cmd_detect(args):
    """Handle detect command."""
    pipeline = TargetPipeline()
    out_dir = Path(args.annotate) if args.annotate else None
    if out_dir is not None:
        out_dir.mkdir(parents=True, exist_ok=True)

    status = 0
    for image_path in args.images:
        try:
            frame = ImageFrameSource.from_files([image_path]).next_frame()
            analysis = pipeline.analyze(frame)
        except FrameError as e:
            print(f"Error: {e}", file=sys.stderr)
            status = 1
            continue

        print(f"{Path(image_path).name:<30} {format_result(analysis.result)}")

        if out_dir is not None:
            annotated = draw_targets(analysis.resized, analysis)
            out_path = out_dir / f"{Path(image_path).stem}_annotated.png"
            cv2.imwrite(str(out_path), annotated)
            print(f"  annotated image written to {out_path}")

    return status


def cmd_check_config(args):
    """Handle check-config command."""
    try:
        deployment = read_config(args.config_file)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Team: {deployment.team}")
    print(f"NetworkTables mode: {'server' if deployment.server else 'client'}")

    print(f"\nCameras: {len(deployment.cameras)}")
    for index, camera in enumerate(deployment.cameras):
        print(f"  [{index}] {camera.name:<20} {camera.path}")

    if deployment.switched_cameras:
        print(f"\nSwitched cameras: {len(deployment.switched_cameras)}")
        for switched in deployment.switched_cameras:
            print(f"  {switched.name:<20} key={switched.key}")

    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="pi-vision-cli",
        description="Offline tools for Pi Vision - test the pipeline and check config files"
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    # detect command
    p_detect = subparsers.add_parser(
        "detect",
        help="Run the target pipeline on image files"
    )
    p_detect.add_argument(
        "images",
        nargs="+",
        help="Image files to process"
    )
    p_detect.add_argument(
        "--annotate",
        type=str,
        default=None,
        help="Directory for annotated copies of the images"
    )

    # check-config command
    p_check = subparsers.add_parser(
        "check-config",
        help="Validate a deployment config file"
    )
    p_check.add_argument(
        "config_file",
        nargs="?",
        default=config.DEFAULT_CONFIG_FILE,
        help=f"Config file (default: {config.DEFAULT_CONFIG_FILE})"
    )

    return parser


def main(argv=None) -> int:
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Route to appropriate command handler
    if args.command == "detect":
        return cmd_detect(args)
    elif args.command == "check-config":
        return cmd_check_config(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
