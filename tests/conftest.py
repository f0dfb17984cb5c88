from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
import shutil
from typing import Callable, Iterator

import pytest

RESULTS_ROOT = Path(__file__).resolve().parents[1] / "test_results"


def pytest_sessionstart(session: object) -> None:
    """Start every run with no frames or manifests left from the last one."""
    shutil.rmtree(RESULTS_ROOT, ignore_errors=True)


@pytest.fixture()
def result_dir(request: pytest.FixtureRequest) -> Iterator[Path]:
    """Folder for frames and manifests worth inspecting after a run.

    Grouped by test module; dropped again if the test kept nothing.
    """
    path = RESULTS_ROOT / request.node.module.__name__ / request.node.name
    path.mkdir(parents=True, exist_ok=True)
    yield path
    if not any(path.iterdir()):
        path.rmdir()


@pytest.fixture()
def ticking_clock() -> Callable[..., Callable[[], datetime]]:
    """Build clocks that advance by a fixed step on every call."""

    def build(
        start: datetime = datetime(2024, 1, 2, 3, 4, 5),
        step: timedelta = timedelta(microseconds=1),
    ) -> Callable[[], datetime]:
        def ticks() -> Iterator[datetime]:
            moment = start
            while True:
                yield moment
                moment += step

        sequence = ticks()
        return lambda: next(sequence)

    return build
