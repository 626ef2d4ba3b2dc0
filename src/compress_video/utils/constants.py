"""
Constants and configuration settings for batch HEVC compression.

This module holds the defaults used when compressing a video tree: the target
codec and container tag, the default bitrate, the ffmpeg/ffprobe binaries and
the scheduling priority ffmpeg runs at. A few of them can be overridden from
the environment (or a local .env file); nothing is persisted between runs.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# External tools
FFMPEG_BIN = os.getenv("COMPRESS_VIDEO_FFMPEG", "ffmpeg")
FFPROBE_BIN = os.getenv("COMPRESS_VIDEO_FFPROBE", "ffprobe")

# Target format
TARGET_CODEC = "hevc"
DEFAULT_ENCODER = "libx265"
VIDEO_TAG = "hvc1"
DEFAULT_BITRATE_KBPS = 2000

# Niceness given to ffmpeg on POSIX systems (Windows uses the below-normal class)
NICE_LEVEL = int(os.getenv("COMPRESS_VIDEO_NICE", "10"))

# Seconds between two transcode.progress log records
PROGRESS_INTERVAL = 60

# Default log file (the --log-file option wins)
LOG_FILE = os.getenv("COMPRESS_VIDEO_LOG_FILE")

# Processing status codes
STATUS_OK = "OK"
STATUS_SKIP = "SKIP"
STATUS_FAIL = "FAIL"
STATUS_DRY_RUN = "DRY-RUN"

# Exit codes
EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 1
EXIT_BAD_OPTION = 2
EXIT_ENVIRONMENT = 2
EXIT_INTERRUPTED = 130
