"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import json
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from scribeline.media.segmenter import Segment
from scribeline.transcribe.backends import FileState, SegmentHandle, TranscriptionBackend


class FakeBackend(TranscriptionBackend):
    """Scripted backend that records every interaction.

    ``responses`` items are returned (str) or raised (Exception) by
    successive generate() calls; ``states`` likewise for get_state().
    """

    name = "fake"

    def __init__(
        self,
        responses: list[Any] | None = None,
        states: list[Any] | None = None,
        requires_ingest: bool = False,
    ) -> None:
        self.responses = list(responses or [])
        self.states = list(states or [])
        self.requires_ingest = requires_ingest
        self.submitted: list[int] = []
        self.released: list[int] = []
        self.prompts: list[tuple[int, str]] = []
        self.state_checks = 0

    def submit(self, segment: Segment) -> SegmentHandle:
        self.submitted.append(segment.index)
        state = FileState.PENDING if self.requires_ingest else FileState.ACTIVE
        return SegmentHandle(segment, state=state, name=f"files/seg-{segment.index}")

    def get_state(self, handle: SegmentHandle) -> FileState:
        self.state_checks += 1
        item = self.states.pop(0) if self.states else FileState.ACTIVE
        if isinstance(item, Exception):
            raise item
        return item

    def generate(self, handle: SegmentHandle, prompt: str) -> str:
        self.prompts.append((handle.segment.index, prompt))
        item = self.responses.pop(0) if self.responses else f"text {handle.segment.index}"
        if isinstance(item, Exception):
            raise item
        return item

    def release(self, handle: SegmentHandle) -> None:
        self.released.append(handle.segment.index)


class FakeMediaTools:
    """Stands in for ffprobe/ffmpeg via a patched subprocess.run."""

    def __init__(self, duration: float, fail_starts: set[float] | None = None) -> None:
        self.duration = duration
        self.fail_starts = fail_starts or set()
        self.encoded: list[tuple[float, float]] = []
        self.probes = 0

    def __call__(self, cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        if cmd[0] == "ffprobe":
            self.probes += 1
            stdout = json.dumps({"format": {"duration": str(self.duration)}})
            return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")

        start = float(cmd[cmd.index("-ss") + 1])
        length = float(cmd[cmd.index("-t") + 1])
        self.encoded.append((start, start + length))
        if start in self.fail_starts:
            return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="encoder error")

        Path(cmd[-1]).write_bytes(b"ID3 fake mp3 payload")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


@pytest.fixture
def fake_media_tools(monkeypatch: pytest.MonkeyPatch) -> Callable[..., FakeMediaTools]:
    """Patch subprocess.run for probing and segmenting."""

    def install(duration: float, fail_starts: set[float] | None = None) -> FakeMediaTools:
        tools = FakeMediaTools(duration, fail_starts)
        monkeypatch.setattr("scribeline.media.probe.subprocess.run", tools)
        return tools

    return install


@pytest.fixture
def make_media(tmp_path: Path) -> Callable[..., Path]:
    """Create a media file of a given size."""

    def factory(name: str = "recording.mp3", size: int = 1024) -> Path:
        path = tmp_path / name
        path.write_bytes(b"\0" * size)
        return path

    return factory


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], None]:
    """Sleep replacement that records requested durations."""
    return sleeps.append


@pytest.fixture
def make_backend() -> Callable[..., FakeBackend]:
    """Build a scripted FakeBackend."""
    return FakeBackend
