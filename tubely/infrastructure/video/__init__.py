"""
Video processing infrastructure.

Handles server-side video processing using FFmpeg:
- Stream metadata extraction (ffprobe)
- Fast-start remuxing (ffmpeg, stream copy)
"""

from .processor import (
    FFmpegVideoProcessor,
    MockVideoProcessor,
    VideoProcessingError,
    VideoProcessor,
    create_video_processor,
    parse_probe_output,
)

__all__ = [
    "FFmpegVideoProcessor",
    "MockVideoProcessor",
    "VideoProcessingError",
    "VideoProcessor",
    "create_video_processor",
    "parse_probe_output",
]
