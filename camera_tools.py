from __future__ import annotations

from pathlib import Path
from typing import Sequence

import cv2
import numpy as np

Frame = np.ndarray

DEFAULT_CAMERA_INDEX = 0
PNG_LOSSLESS = (cv2.IMWRITE_PNG_COMPRESSION, 0)
FRAME_SIZE_TOLERANCE_PX = 1.0


def _request_frame_size(
    capture: cv2.VideoCapture, width: int | None, height: int | None
) -> None:
    """Ask the driver for a frame size and check what it actually delivers."""
    requested = {
        cv2.CAP_PROP_FRAME_WIDTH: width,
        cv2.CAP_PROP_FRAME_HEIGHT: height,
    }
    for prop_id, value in requested.items():
        if value is None:
            continue
        if value <= 0:
            raise ValueError("Frame width and height must be positive.")
        if not capture.set(prop_id, float(value)):
            raise RuntimeError(f"Camera rejected frame size {width}x{height}.")

    actual_width = capture.get(cv2.CAP_PROP_FRAME_WIDTH)
    actual_height = capture.get(cv2.CAP_PROP_FRAME_HEIGHT)
    for prop_id, actual in (
        (cv2.CAP_PROP_FRAME_WIDTH, actual_width),
        (cv2.CAP_PROP_FRAME_HEIGHT, actual_height),
    ):
        value = requested[prop_id]
        if value is not None and abs(actual - value) > FRAME_SIZE_TOLERANCE_PX:
            raise RuntimeError(
                f"Camera frame size mismatch: requested {width}x{height}, "
                f"got {actual_width:.0f}x{actual_height:.0f}."
            )


def open_camera(
    camera_index: int,
    *,
    width: int | None = None,
    height: int | None = None,
) -> cv2.VideoCapture:
    """Open a camera and apply an optional frame size."""
    if camera_index < 0:
        raise ValueError("camera_index must be >= 0.")

    capture = cv2.VideoCapture(camera_index)
    if not capture.isOpened():
        capture.release()
        raise RuntimeError(f"Failed to connect to camera {camera_index}.")

    if width is not None or height is not None:
        try:
            _request_frame_size(capture, width, height)
        except (RuntimeError, ValueError):
            capture.release()
            raise

    return capture


def get_capture_info(capture: cv2.VideoCapture) -> dict[str, float | str]:
    """Return basic capture properties."""
    try:
        backend = capture.getBackendName()
    except cv2.error:
        backend = "unknown"
    return {
        "backend": backend,
        "width": capture.get(cv2.CAP_PROP_FRAME_WIDTH),
        "height": capture.get(cv2.CAP_PROP_FRAME_HEIGHT),
        "fps": capture.get(cv2.CAP_PROP_FPS),
    }


def describe_camera(camera_index: int, info: dict[str, float | str]) -> str:
    """Format a one-line description of an open camera."""
    width = int(info.get("width", 0) or 0)
    height = int(info.get("height", 0) or 0)
    fps = float(info.get("fps", 0) or 0)
    return f"Camera {camera_index} ({info.get('backend', 'unknown')}) {width}x{height} @ {fps:.1f} fps"


def capture_frame(capture: cv2.VideoCapture) -> Frame:
    """Read a single frame from an open camera."""
    ok, frame = capture.read()
    if not ok or frame is None:
        raise RuntimeError("Failed to read frame from camera.")
    return frame


def save_image(
    frame: Frame,
    output_path: Path,
    params: Sequence[int] = PNG_LOSSLESS,
) -> None:
    """Write a frame to disk, PNG without compression by default."""
    saved = cv2.imwrite(str(output_path), frame, list(params))
    if not saved:
        raise RuntimeError(f"Failed to write image to {output_path}.")


def close_camera(capture: cv2.VideoCapture) -> None:
    """Release the camera and close any preview windows."""
    capture.release()
    cv2.destroyAllWindows()
