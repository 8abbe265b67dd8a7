"""
Integration tests against the real ffmpeg/ffprobe binaries.

Skipped when either binary is not on PATH.
"""

import json
import shutil
import struct
import subprocess
from pathlib import Path

import pytest

from tubely.core.media.models import Orientation
from tubely.infrastructure.video.processor import FFmpegVideoProcessor, VideoProcessingError

pytestmark = pytest.mark.skipif(
    shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
    reason="ffmpeg and ffprobe are required",
)


def _top_level_atoms(path: Path) -> list[str]:
    """List the top-level MP4 box types in file order."""
    atoms = []
    with open(path, "rb") as f:
        while header := f.read(8):
            if len(header) < 8:
                break
            size, kind = struct.unpack(">I4s", header)
            atoms.append(kind.decode("latin-1"))
            if size == 1:
                size = struct.unpack(">Q", f.read(8))[0]
                f.seek(size - 16, 1)
            elif size == 0:
                break
            else:
                f.seek(size - 8, 1)
    return atoms


def _streams(path: Path) -> list[dict]:
    result = subprocess.run(
        ["ffprobe", "-v", "error", "-print_format", "json", "-show_streams", "-show_format", str(path)],
        capture_output=True,
        text=True,
        check=True,
    )
    return json.loads(result.stdout)


@pytest.fixture
def sample_video(tmp_path) -> Path:
    """Two seconds of 1280x720 video plus a tone, index at the end."""
    path = tmp_path / "sample.mp4"
    subprocess.run(
        [
            "ffmpeg", "-y", "-v", "error",
            "-f", "lavfi", "-i", "testsrc=size=1280x720:rate=25:duration=2",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=2",
            "-c:v", "mpeg4", "-c:a", "aac",
            "-shortest",
            str(path),
        ],
        check=True,
        capture_output=True,
    )
    return path


class TestFFmpegIntegration:
    async def test_probe_reads_dimensions(self, sample_video):
        metadata = await FFmpegVideoProcessor().probe(sample_video)

        assert (metadata.width, metadata.height) == (1280, 720)
        assert metadata.orientation is Orientation.LANDSCAPE

    async def test_probe_rejects_non_video(self, tmp_path):
        bogus = tmp_path / "bogus.mp4"
        bogus.write_bytes(b"this is not a video file")

        with pytest.raises(VideoProcessingError):
            await FFmpegVideoProcessor().probe(bogus)

    async def test_remux_moves_index_to_front_and_keeps_streams(self, sample_video):
        assert _top_level_atoms(sample_video).index("moov") > _top_level_atoms(sample_video).index("mdat")

        output = await FFmpegVideoProcessor().remux(sample_video)

        atoms = _top_level_atoms(output)
        assert atoms.index("moov") < atoms.index("mdat")

        before = _streams(sample_video)
        after = _streams(output)
        assert [s["codec_type"] for s in after["streams"]] == [
            s["codec_type"] for s in before["streams"]
        ]
        assert float(after["format"]["duration"]) == pytest.approx(
            float(before["format"]["duration"]), abs=0.1
        )
