"""
Constants, system helpers and logging shared by the compression pipeline.

This package collects the run defaults and status codes, helpers for running
external commands at lowered priority, ETA formatting, and the structured
logger used for all console output.
"""

from .constants import (
    DEFAULT_BITRATE_KBPS,
    DEFAULT_ENCODER,
    FFMPEG_BIN,
    FFPROBE_BIN,
    STATUS_DRY_RUN,
    STATUS_FAIL,
    STATUS_OK,
    STATUS_SKIP,
    TARGET_CODEC,
    VIDEO_TAG,
)
from .logger import LogLevel

__all__ = [
    "DEFAULT_BITRATE_KBPS",
    "DEFAULT_ENCODER",
    "FFMPEG_BIN",
    "FFPROBE_BIN",
    "TARGET_CODEC",
    "VIDEO_TAG",
    "STATUS_OK",
    "STATUS_SKIP",
    "STATUS_FAIL",
    "STATUS_DRY_RUN",
    "LogLevel",
]
