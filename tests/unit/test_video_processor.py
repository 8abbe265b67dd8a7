"""
Unit tests for the ffprobe/ffmpeg wrapper.

asyncio.create_subprocess_exec is replaced so most of these tests run
without ffmpeg installed. TestProcessCleanup drives a stand-in ffmpeg
shell script; the real binaries are exercised in
test_ffmpeg_integration.py.
"""

import asyncio
import json
import subprocess
import sys
from pathlib import Path

import pytest

from tubely.core.media.models import Orientation
from tubely.infrastructure.video import processor as processor_module
from tubely.infrastructure.video.processor import (
    FFmpegVideoProcessor,
    MockVideoProcessor,
    VideoProcessingError,
    create_video_processor,
    parse_probe_output,
    remux_output_path,
)


def _probe_json(*streams) -> str:
    return json.dumps({"streams": list(streams)})


class FakeProcess:
    """Just enough of asyncio.subprocess.Process for the wrapper."""

    def __init__(self, exit_code: int, stdout: str, stderr: str, hang: bool = False):
        self.returncode = None
        self.killed = False
        self._exit_code = exit_code
        self._stdout = stdout.encode()
        self._stderr = stderr.encode()
        self._hang = hang

    async def communicate(self):
        if self._hang:
            await asyncio.sleep(3600)
        self.returncode = self._exit_code
        return self._stdout, self._stderr

    def kill(self):
        self.killed = True
        self.returncode = -9

    async def wait(self):
        return self.returncode


class FakeExec:
    """Stands in for asyncio.create_subprocess_exec and records every command."""

    def __init__(self, probe_stdout: str = "", returncode: int = 0, hang: bool = False):
        self.commands: list[list[str]] = []
        self.processes: list[FakeProcess] = []
        self.probe_stdout = probe_stdout
        self.returncode = returncode
        self.hang = hang

    async def __call__(self, *cmd, **kwargs):
        cmd = list(cmd)
        self.commands.append(cmd)
        if cmd[0] == "ffmpeg" and self.returncode == 0 and not self.hang:
            Path(cmd[-1]).write_bytes(b"remuxed")
        proc = FakeProcess(
            self.returncode, self.probe_stdout, "moov atom not found", hang=self.hang
        )
        self.processes.append(proc)
        return proc


@pytest.fixture(autouse=True)
def ffmpeg_version_check(monkeypatch):
    def version(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 0, stdout="ffmpeg version 6.1", stderr="")

    monkeypatch.setattr(processor_module.subprocess, "run", version)


def _install(monkeypatch, fake: FakeExec) -> FakeExec:
    monkeypatch.setattr(processor_module.asyncio, "create_subprocess_exec", fake)
    return fake


@pytest.fixture
def staged_file(tmp_path) -> Path:
    path = tmp_path / "upload.mp4"
    path.write_bytes(b"\x00" * 64)
    return path


class TestParseProbeOutput:
    def test_picks_first_video_stream(self):
        output = _probe_json(
            {"codec_type": "audio", "codec_name": "aac"},
            {"codec_type": "video", "codec_name": "h264", "width": 1280, "height": 720,
             "duration": "12.5"},
            {"codec_type": "video", "width": 640, "height": 480},
        )

        metadata = parse_probe_output(output)

        assert (metadata.width, metadata.height) == (1280, 720)
        assert metadata.codec_name == "h264"
        assert metadata.duration_seconds == 12.5
        assert metadata.orientation is Orientation.LANDSCAPE

    def test_no_video_stream(self):
        with pytest.raises(VideoProcessingError, match="No video stream"):
            parse_probe_output(_probe_json({"codec_type": "audio"}))

    def test_empty_stream_list(self):
        with pytest.raises(VideoProcessingError, match="No video stream"):
            parse_probe_output(json.dumps({"streams": []}))

    def test_invalid_json(self):
        with pytest.raises(VideoProcessingError, match="Unable to read probe data"):
            parse_probe_output("Invalid data found when processing input")

    def test_missing_dimensions(self):
        with pytest.raises(VideoProcessingError, match="no usable dimensions"):
            parse_probe_output(_probe_json({"codec_type": "video", "codec_name": "h264"}))

    def test_unparseable_duration_is_ignored(self):
        output = _probe_json(
            {"codec_type": "video", "width": 1280, "height": 720, "duration": "N/A"}
        )

        metadata = parse_probe_output(output)

        assert metadata.duration_seconds is None
        assert (metadata.width, metadata.height) == (1280, 720)


class TestFFmpegVideoProcessor:
    async def test_probe_runs_ffprobe_on_staged_path(self, monkeypatch, staged_file):
        fake = _install(
            monkeypatch,
            FakeExec(probe_stdout=_probe_json({"codec_type": "video", "width": 640, "height": 480})),
        )
        processor = FFmpegVideoProcessor()

        metadata = await processor.probe(staged_file)

        assert metadata.orientation is Orientation.OTHER
        probe_cmd = fake.commands[-1]
        assert probe_cmd[0] == "ffprobe"
        assert "-show_streams" in probe_cmd
        assert probe_cmd[-1] == str(staged_file)

    async def test_probe_nonzero_exit(self, monkeypatch, staged_file):
        _install(monkeypatch, FakeExec(returncode=1))
        processor = FFmpegVideoProcessor()

        with pytest.raises(VideoProcessingError, match="FFprobe failed"):
            await processor.probe(staged_file)

    async def test_probe_timeout_kills_the_process(self, monkeypatch, staged_file):
        fake = _install(monkeypatch, FakeExec(hang=True))
        processor = FFmpegVideoProcessor(probe_timeout=0.05)

        with pytest.raises(VideoProcessingError, match="timed out after 0.05s"):
            await processor.probe(staged_file)

        assert fake.processes[0].killed

    async def test_missing_binary(self, monkeypatch, staged_file):
        async def not_found(*cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(processor_module.asyncio, "create_subprocess_exec", not_found)
        processor = FFmpegVideoProcessor()

        with pytest.raises(VideoProcessingError, match="Unable to run ffprobe"):
            await processor.probe(staged_file)

    async def test_remux_uses_stream_copy_and_faststart(self, monkeypatch, staged_file):
        fake = _install(monkeypatch, FakeExec())
        processor = FFmpegVideoProcessor()

        output = await processor.remux(staged_file)

        assert output == remux_output_path(staged_file)
        assert output.read_bytes() == b"remuxed"
        cmd = fake.commands[-1]
        assert cmd[cmd.index("-c") + 1] == "copy"
        assert cmd[cmd.index("-movflags") + 1] == "faststart"
        assert cmd[cmd.index("-map") + 1] == "0"

    async def test_remux_writes_to_requested_path(self, monkeypatch, staged_file, tmp_path):
        fake = _install(monkeypatch, FakeExec())
        target = tmp_path / "out.mp4"

        output = await FFmpegVideoProcessor().remux(staged_file, target)

        assert output == target
        assert fake.commands[-1][-1] == str(target)

    async def test_remux_failure_removes_partial_output(self, monkeypatch, staged_file):
        _install(monkeypatch, FakeExec(returncode=1))
        processor = FFmpegVideoProcessor()
        remux_output_path(staged_file).write_bytes(b"partial")

        with pytest.raises(VideoProcessingError, match="FFmpeg failed"):
            await processor.remux(staged_file)

        assert not remux_output_path(staged_file).exists()
        assert staged_file.exists()

    def test_missing_ffmpeg_fails_at_startup(self, monkeypatch):
        def not_found(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(processor_module.subprocess, "run", not_found)

        with pytest.raises(RuntimeError, match="FFmpeg not found"):
            FFmpegVideoProcessor()


SLOW_FFMPEG = """#!/bin/sh
if [ "$1" = "-version" ]; then
    echo "ffmpeg version 6.1"
    exit 0
fi
for last; do :; done
sleep 1
printf remuxed > "$last"
"""


@pytest.fixture
def slow_ffmpeg(tmp_path) -> str:
    """An ffmpeg that takes a second before writing its output file."""
    path = tmp_path / "ffmpeg"
    path.write_text(SLOW_FFMPEG)
    path.chmod(0o755)
    return str(path)


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
class TestProcessCleanup:
    """A killed remux must not write its output after cleanup has run."""

    async def test_cancelled_remux_leaves_no_output(self, slow_ffmpeg, staged_file):
        processor = FFmpegVideoProcessor(ffmpeg_path=slow_ffmpeg)

        task = asyncio.create_task(processor.remux(staged_file))
        await asyncio.sleep(0.2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        await asyncio.sleep(1.5)
        assert not remux_output_path(staged_file).exists()

    async def test_timed_out_remux_leaves_no_output(self, slow_ffmpeg, staged_file):
        processor = FFmpegVideoProcessor(ffmpeg_path=slow_ffmpeg, remux_timeout=0.2)

        with pytest.raises(VideoProcessingError, match="timed out"):
            await processor.remux(staged_file)

        await asyncio.sleep(1.5)
        assert not remux_output_path(staged_file).exists()


class TestMockVideoProcessor:
    async def test_reports_configured_dimensions(self, staged_file):
        processor = MockVideoProcessor(width=640, height=480)

        metadata = await processor.probe(staged_file)

        assert (metadata.width, metadata.height) == (640, 480)

    async def test_remux_copies_file(self, staged_file):
        output = await MockVideoProcessor().remux(staged_file)

        assert output.read_bytes() == staged_file.read_bytes()

    def test_factory_returns_mock_in_mock_mode(self):
        assert isinstance(create_video_processor(mock_mode=True), MockVideoProcessor)
