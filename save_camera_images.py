from __future__ import annotations

import argparse
import os
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

import cv2

from camera_tools import (
    DEFAULT_CAMERA_INDEX,
    capture_frame,
    close_camera,
    describe_camera,
    get_capture_info,
    open_camera,
    save_image,
)
from capture_logging import get_logger
from capture_session import (
    Clock,
    ManifestWriteError,
    count_regular_files,
    images_per_second,
    next_frame_path,
    start_session,
)

DEFAULT_WINDOW_NAME = "image"
QUIT_KEY = "q"

HELP_BANNER = "\n".join(
    [
        "-" * 78,
        "This program writes image files from camera.",
        "Usage:",
        "save-camera-images output_path_base",
        "-" * 78,
        "",
    ]
)

log = get_logger("save_camera_images")


@dataclass(frozen=True)
class RunReport:
    duration_seconds: float
    image_count: int
    images_per_second: float | None

    def lines(self) -> list[str]:
        rate = "n/a" if self.images_per_second is None else f"{self.images_per_second:.2f}"
        return [
            f"Run duration: {self.duration_seconds:.2f}",
            f"Image count: {self.image_count}",
            f"Images per second: {rate}",
        ]


def resolve_camera_index(index_override: int | None) -> int:
    if index_override is not None:
        return index_override
    value = os.environ.get("CAPTURE_CAMERA_INDEX")
    if not value:
        return DEFAULT_CAMERA_INDEX
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"CAPTURE_CAMERA_INDEX must be an integer, got {value!r}.") from exc


def capture_loop(
    capture: cv2.VideoCapture,
    session_dir: Path,
    *,
    window_name: str = DEFAULT_WINDOW_NAME,
    quit_key: str = QUIT_KEY,
    clock: Clock = datetime.now,
) -> int:
    """Show and save frames until the quit key is pressed.

    Returns the number of frames written. Failed reads and writes are logged
    and the loop keeps going.
    """
    written = 0
    key = -1
    while key != ord(quit_key):
        try:
            frame = capture_frame(capture)
        except RuntimeError:
            log.warning("capture error")
            key = cv2.waitKey(1) & 0xFF
            continue

        cv2.imshow(window_name, frame)
        key = cv2.waitKey(1) & 0xFF

        output_path = next_frame_path(session_dir, clock=clock)
        try:
            save_image(frame, output_path)
        except RuntimeError as exc:
            log.error("%s", exc)
            continue
        written += 1

    return written


def build_report(session_dir: Path, duration_seconds: float) -> RunReport:
    image_count = count_regular_files(session_dir)
    return RunReport(
        duration_seconds=duration_seconds,
        image_count=image_count,
        images_per_second=images_per_second(image_count, duration_seconds),
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="save-camera-images",
        description="Write image files from a camera into a dated session directory.",
    )
    parser.add_argument("output_path_base", type=Path, help="Base directory for capture sessions.")
    parser.add_argument(
        "--camera-index",
        type=int,
        default=None,
        help=f"Camera index (overrides CAPTURE_CAMERA_INDEX, default {DEFAULT_CAMERA_INDEX}).",
    )
    parser.add_argument("--width", type=int, default=None, help="Requested frame width.")
    parser.add_argument("--height", type=int, default=None, help="Requested frame height.")
    parser.add_argument(
        "--window-name",
        default=DEFAULT_WINDOW_NAME,
        help="Title of the preview window.",
    )
    return parser.parse_args(argv)


def main(
    argv: Sequence[str] | None = None,
    *,
    timer: Callable[[], float] = time.monotonic,
) -> int:
    print(HELP_BANNER)
    args = parse_args(argv)

    try:
        session = start_session(args.output_path_base)
    except ManifestWriteError as exc:
        print(f"Error: {exc}")
        return 1
    if not session.ok:
        print(f"Error: cannot save images into {session.session_dir}")
        return 1

    try:
        camera_index = resolve_camera_index(args.camera_index)
        capture = open_camera(camera_index, width=args.width, height=args.height)
    except (RuntimeError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    try:
        print(describe_camera(camera_index, get_capture_info(capture)))
        start_time = timer()
        capture_loop(capture, session.session_dir, window_name=args.window_name)
        duration = timer() - start_time
    finally:
        close_camera(capture)

    for line in build_report(session.session_dir, duration).lines():
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
