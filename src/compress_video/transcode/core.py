"""
Functions to probe video streams and run ffmpeg HEVC transcodes.

This module wraps the two external collaborators of the pipeline: ffprobe,
which reports the codec, dimensions and frame count of a file's first video
stream, and ffmpeg, which produces the HEVC copy. ffmpeg runs at lowered CPU
priority and its -stats output drives a progress bar and periodic progress
records. FFprobeProbe and FFmpegTranscoder expose each tool behind a single
narrow interface so the batch driver can be run against fakes.
"""
import json
import re
import subprocess
import time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple

from tqdm import tqdm

from compress_video.utils import system_util, logger, time_util, LogLevel
from compress_video.utils.constants import (
    DEFAULT_ENCODER,
    FFMPEG_BIN,
    FFPROBE_BIN,
    PROGRESS_INTERVAL,
    TARGET_CODEC,
    VIDEO_TAG,
)

_FRAME_RE = re.compile(r"frame=\s*(\d+)")
_FPS_RE = re.compile(r"fps=\s*([\d.]+)")
_SPEED_RE = re.compile(r"speed=\s*([\d.]+)x")


@dataclass
class VideoInfo:
    codec: str
    width: Optional[int] = None
    height: Optional[int] = None
    frame_count: Optional[int] = None
    duration: Optional[float] = None


def _to_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def normalize_codec(raw: str) -> str:
    """Strip carriage returns and surrounding whitespace from probe output."""
    return raw.replace("\r", "").strip()


def is_target_codec(codec: Optional[str]) -> bool:
    """True when ``codec`` already names the HEVC target."""
    if not codec:
        return False
    return normalize_codec(codec).lower() == TARGET_CODEC


def ffprobe_codec(path: Path) -> Optional[str]:
    """Return the codec name of the first video stream, or None if ffprobe fails."""
    cmd = [
        FFPROBE_BIN, "-hide_banner", "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "stream=codec_name",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]
    code, out, _ = system_util.run_cmd(cmd)
    if code != 0:
        return None
    lines = [normalize_codec(line) for line in out.splitlines()]
    lines = [line for line in lines if line]
    return lines[0] if lines else None


def ffprobe_video_info(path: Path) -> Optional[VideoInfo]:
    """Probe the first video stream for codec, size, packet count and duration."""
    cmd = [
        FFPROBE_BIN, "-v", "error",
        "-select_streams", "v:0",
        "-count_packets",
        "-show_entries", "stream=codec_name,width,height,nb_read_packets:format=duration",
        "-of", "json",
        str(path),
    ]
    code, out, _ = system_util.run_cmd(cmd)
    if code != 0:
        return None
    try:
        data = json.loads(out)
    except json.JSONDecodeError:
        return None
    streams = data.get("streams") or []
    if not streams:
        return None
    s = streams[0]

    duration = None
    if "format" in data and "duration" in data["format"]:
        try:
            duration = float(data["format"]["duration"])
        except (ValueError, TypeError):
            pass

    return VideoInfo(
        codec=normalize_codec(s.get("codec_name", "")),
        width=_to_int(s.get("width")),
        height=_to_int(s.get("height")),
        frame_count=_to_int(s.get("nb_read_packets")),
        duration=duration,
    )


@lru_cache(maxsize=1)
def _available_ffmpeg_encoders() -> List[str]:
    """Return a cached list of available ffmpeg video encoders."""
    code, out, _ = system_util.run_cmd([FFMPEG_BIN, "-hide_banner", "-encoders"])
    if code != 0:
        return []

    encoders = []
    for line in out.splitlines():
        parts = line.split()
        # Lines look like: " V..... libx265 ..."
        if len(parts) >= 2 and parts[0].startswith("V"):
            encoders.append(parts[1])
    return encoders


def select_encoder(preferred: Optional[str] = None) -> str:
    """Use the requested HEVC encoder if ffmpeg has it, libx265 otherwise."""
    if not preferred or preferred == DEFAULT_ENCODER:
        return DEFAULT_ENCODER
    if preferred in _available_ffmpeg_encoders():
        return preferred
    logger.log("startup.encoder_fallback", LogLevel.WARN,
               requested=preferred,
               using=DEFAULT_ENCODER)
    return DEFAULT_ENCODER


def build_ffmpeg_cmd(src: Path, dst: Path, bitrate_kbps: int,
                     encoder: str = DEFAULT_ENCODER) -> List[str]:
    """Build the ffmpeg command transcoding every stream of ``src`` to HEVC video + copied audio."""
    return [
        FFMPEG_BIN,
        "-stats",
        "-hide_banner",
        "-loglevel", "error",
        "-i", str(src),
        "-c:v", encoder,
        "-tag:v", VIDEO_TAG,
        "-b:v", f"{bitrate_kbps}k",
        "-map", "0",
        "-c:a", "copy",
        str(dst),
    ]


def parse_stats_line(line: str) -> Tuple[Optional[int], Optional[float], Optional[str]]:
    """
    Pull (frame, fps, speed) out of an ffmpeg -stats line.

    Example: frame= 1234 fps= 18 q=-0.0 size=  10240KiB time=00:01:23.45 bitrate=1234.5kbits/s speed=0.75x
    """
    frame_match = _FRAME_RE.search(line)
    if not frame_match:
        return None, None, None
    fps_match = _FPS_RE.search(line)
    speed_match = _SPEED_RE.search(line)
    fps = float(fps_match.group(1)) if fps_match else None
    speed = f"{speed_match.group(1)}x" if speed_match else None
    return int(frame_match.group(1)), fps, speed


def _remove_partial(dst: Path) -> None:
    if dst.exists():
        try:
            dst.unlink()
        except OSError as e:
            logger.log("transcode.cleanup_failed", LogLevel.WARN,
                       dst=str(dst),
                       error=str(e))


def transcode_video(src: Path, dst: Path, info: Optional[VideoInfo], bitrate_kbps: int,
                    encoder: str = DEFAULT_ENCODER, debug: bool = False) -> Tuple[int, str]:
    """
    Transcode a video file to HEVC at lowered priority, reporting progress.

    Args:
        src: Source video file path
        dst: Destination video file path (parent directory must exist)
        info: Probed stream information, used for progress; may be None
        bitrate_kbps: Target video bitrate in kbps
        encoder: ffmpeg HEVC encoder name
        debug: Log the full command and a longer stderr excerpt on failure

    Returns:
        Tuple of (exit_code, stderr)

    A failed run leaves no partial output behind. KeyboardInterrupt stops
    ffmpeg, removes the partial output and propagates.
    """
    cmd = build_ffmpeg_cmd(src, dst, bitrate_kbps, encoder)
    if debug:
        logger.log("transcode.command", LogLevel.DEBUG, cmd=" ".join(cmd))

    total_frames = info.frame_count if info else None
    error_lines = []
    last_progress_log = time.time()

    process = subprocess.Popen(
        cmd,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        **system_util.low_priority_kwargs(),
    )
    pbar = tqdm(total=total_frames, unit="frame", desc=src.name[:30], leave=False, disable=None)
    try:
        # ffmpeg ends -stats lines with \r; text mode splits on it too
        while True:
            line = process.stderr.readline()
            if not line:
                break

            frame, fps, speed = parse_stats_line(line)
            if frame is None:
                error_lines.append(line.rstrip())
                continue

            if frame > pbar.n:
                pbar.update(frame - pbar.n)
            if speed:
                pbar.set_postfix(speed=speed)

            now = time.time()
            if now - last_progress_log >= PROGRESS_INTERVAL:
                last_progress_log = now
                if total_frames:
                    pct = round(min(frame / total_frames, 1.0) * 100, 1)
                    eta = time_util.get_eta_single_file(total_frames, frame, fps) if fps else "N/A"
                else:
                    pct, eta = "N/A", "N/A"
                logger.log("transcode.progress", LogLevel.INFO,
                           file=src.name,
                           pct=pct,
                           eta=eta,
                           speed=speed or "N/A")

        process.wait()
    except KeyboardInterrupt:
        process.terminate()
        try:
            process.wait(timeout=10)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
        _remove_partial(dst)
        logger.log("transcode.interrupted", LogLevel.WARN,
                   file=str(src),
                   partial_removed=not dst.exists())
        raise
    finally:
        pbar.close()

    stderr_text = "\n".join(error_lines)
    code = process.returncode

    if code != 0:
        _remove_partial(dst)
        logger.log("transcode.failed", LogLevel.ERROR,
                   file=str(src),
                   exit_code=code,
                   error=stderr_text if debug else stderr_text[-200:])

    return code, stderr_text


class FFprobeProbe:
    """Read-only stream queries backed by ffprobe."""

    def probe_codec(self, path: Path) -> Optional[str]:
        return ffprobe_codec(path)

    def probe_video_stream(self, path: Path) -> Optional[VideoInfo]:
        return ffprobe_video_info(path)


class FFmpegTranscoder:
    """HEVC transcodes backed by ffmpeg."""

    def __init__(self, encoder: str = DEFAULT_ENCODER, debug: bool = False):
        self.encoder = encoder
        self.debug = debug

    def transcode(self, src: Path, dst: Path, info: Optional[VideoInfo],
                  bitrate_kbps: int) -> Tuple[int, str]:
        return transcode_video(src, dst, info, bitrate_kbps,
                               encoder=self.encoder, debug=self.debug)
