"""Video compression functionality.

This package provides two levels of functionality:
- core: ffprobe/ffmpeg wrappers (VideoInfo, probing, command building, transcoding)
- batch: Run configuration, file discovery, skip decisions and the batch loop
"""

from .core import (
    VideoInfo,
    FFprobeProbe,
    FFmpegTranscoder,
    ffprobe_codec,
    ffprobe_video_info,
    is_target_codec,
    select_encoder,
    build_ffmpeg_cmd,
    transcode_video,
)
from .batch import (
    RunConfig,
    Candidate,
    make_candidate,
    iter_candidate_files,
    compress_one,
    compress_tree,
    summarize,
)

__all__ = [
    # Video info
    "VideoInfo",
    "FFprobeProbe",
    "ffprobe_codec",
    "ffprobe_video_info",
    "is_target_codec",
    # Transcoding
    "FFmpegTranscoder",
    "select_encoder",
    "build_ffmpeg_cmd",
    "transcode_video",
    # Batch
    "RunConfig",
    "Candidate",
    "make_candidate",
    "iter_candidate_files",
    "compress_one",
    "compress_tree",
    "summarize",
]
