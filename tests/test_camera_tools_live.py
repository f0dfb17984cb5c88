from __future__ import annotations

from pathlib import Path
import sys

import cv2
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from camera_tools import (
    DEFAULT_CAMERA_INDEX,
    capture_frame,
    describe_camera,
    get_capture_info,
    open_camera,
    save_image,
)
from capture_session import count_regular_files, next_frame_path, start_session


@pytest.mark.live_capture
def test_live_session_capture(result_dir: Path) -> None:
    """Capture a few frames from the camera into a session directory."""
    session = start_session(result_dir)
    assert session.ok

    capture = open_camera(DEFAULT_CAMERA_INDEX)
    try:
        info = get_capture_info(capture)
        for _ in range(3):
            save_image(capture_frame(capture), next_frame_path(session.session_dir))
    finally:
        capture.release()

    assert count_regular_files(session.session_dir) == 3
    first = sorted(session.session_dir.iterdir())[0]
    image = cv2.imread(str(first))
    if image is None:
        raise RuntimeError(f"Failed to read image at {first}.")
    (result_dir / "result.txt").write_text(describe_camera(DEFAULT_CAMERA_INDEX, info))
