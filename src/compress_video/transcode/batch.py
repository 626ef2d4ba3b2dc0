"""
This module provides the batch side of compression: recursive discovery of
candidate files, the per-file skip decisions, and the sequential loop that
hands each remaining file to the transcoder.

The destination tree mirrors the source tree and existing destination files
are never overwritten.
"""
import os
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Tuple

from compress_video.utils import (
    DEFAULT_BITRATE_KBPS,
    DEFAULT_ENCODER,
    STATUS_DRY_RUN,
    STATUS_FAIL,
    STATUS_OK,
    STATUS_SKIP,
    LogLevel,
    logger,
    time_util,
)
from . import core

Outcome = Tuple[Path, Optional[Path], str]


class VideoProbe(Protocol):
    def probe_codec(self, path: Path) -> Optional[str]: ...

    def probe_video_stream(self, path: Path) -> Optional[core.VideoInfo]: ...


class Transcoder(Protocol):
    def transcode(self, src: Path, dst: Path, info: Optional[core.VideoInfo],
                  bitrate_kbps: int) -> Tuple[int, str]: ...


@dataclass(frozen=True)
class RunConfig:
    """Settings for one run, fixed once the arguments are parsed."""

    extension: str
    source: Path
    destination: Path
    bitrate_kbps: int = DEFAULT_BITRATE_KBPS
    encoder: str = DEFAULT_ENCODER
    dry_run: bool = False


@dataclass
class Candidate:
    """A discovered file and where its compressed copy goes."""

    source_path: Path
    relative_path: Path
    destination_path: Path
    codec: Optional[str] = None


def make_candidate(src: Path, config: RunConfig) -> Candidate:
    """Mirror ``src`` from the source root onto the destination root."""
    rel = src.relative_to(config.source)
    return Candidate(source_path=src, relative_path=rel, destination_path=config.destination / rel)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def iter_candidate_files(root: Path, extension: str, exclude: Optional[Path] = None) -> Iterator[Path]:
    """
    Yield files under ``root`` whose name ends with ``.extension``, lazily.

    The match is case-sensitive. Directories are visited in sorted order and
    symlinked directories are not followed. ``exclude`` prunes a subtree,
    e.g. a destination that lives inside the source.
    """
    suffix = f".{extension}"
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        if exclude is not None:
            dirnames[:] = [d for d in dirnames if current / d != exclude]
        dirnames.sort()
        for name in sorted(filenames):
            if name.endswith(suffix):
                yield current / name


def draw_line() -> None:
    """Draw a dashed line the width of the console."""
    width = shutil.get_terminal_size((80, 20)).columns
    logger.safe_print("-" * width)


def _show_banner(candidate: Candidate, info: Optional[core.VideoInfo]) -> None:
    def _or_unknown(value):
        return "?" if value is None else value

    width = _or_unknown(info.width if info else None)
    height = _or_unknown(info.height if info else None)
    frames = _or_unknown(info.frame_count if info else None)
    draw_line()
    logger.safe_print(f"Compressing {candidate.source_path} with size {width}x{height} "
                      f"and with {frames} frames to file {candidate.destination_path}")
    draw_line()
    logger.log("transcode.start", LogLevel.INFO,
               src=str(candidate.source_path),
               width=info.width if info else None,
               height=info.height if info else None,
               frames=info.frame_count if info else None,
               dst=str(candidate.destination_path))


def compress_one(src: Path, config: RunConfig, probe: VideoProbe, transcoder: Transcoder) -> Outcome:
    """Decide whether ``src`` needs compressing and, if so, compress it."""
    candidate = make_candidate(src, config)
    dst = candidate.destination_path

    if dst.is_file():
        logger.log("candidate.skip", LogLevel.WARN,
                   reason="destination exists",
                   dst=str(dst))
        return src, dst, f"{STATUS_SKIP} (destination exists)"

    candidate.codec = probe.probe_codec(src)
    if not candidate.codec:
        logger.log("probe.failed", LogLevel.ERROR, file=str(src))
        return src, None, f"{STATUS_FAIL} (ffprobe failed)"

    if core.is_target_codec(candidate.codec):
        logger.log("candidate.skip", LogLevel.WARN,
                   reason="already HEVC",
                   file=str(src))
        return src, None, f"{STATUS_SKIP} (already HEVC)"

    if config.dry_run:
        logger.log("candidate.dry_run", LogLevel.INFO,
                   src=str(src),
                   codec=candidate.codec,
                   dst=str(dst))
        return src, dst, STATUS_DRY_RUN

    info = probe.probe_video_stream(src)
    _show_banner(candidate, info)

    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.log("transcode.failed", LogLevel.ERROR,
                   file=str(src),
                   error=f"cannot create {dst.parent}: {e}")
        return src, None, f"{STATUS_FAIL} (cannot create destination folder)"

    code, _ = transcoder.transcode(src, dst, info, config.bitrate_kbps)
    if code != 0:
        return src, None, f"{STATUS_FAIL} (ffmpeg code {code})"

    logger.log("transcode.complete", LogLevel.INFO,
               src=str(src),
               dst=str(dst))
    return src, dst, STATUS_OK


def compress_tree(config: RunConfig, probe: VideoProbe, transcoder: Transcoder) -> List[Outcome]:
    """Process every candidate under the source root, one at a time."""
    exclude = config.destination if _is_within(config.destination, config.source) else None
    results = []
    for src in iter_candidate_files(config.source, config.extension, exclude=exclude):
        results.append(compress_one(src, config, probe, transcoder))
    return results


def summarize(results: List[Outcome], started: float) -> dict:
    """Count outcomes by status and log the batch summary."""
    counts = {
        "ok": sum(1 for _, _, s in results if s.startswith(STATUS_OK)),
        "skip": sum(1 for _, _, s in results if s.startswith(STATUS_SKIP)),
        "fail": sum(1 for _, _, s in results if s.startswith(STATUS_FAIL)),
        "dry_run": sum(1 for _, _, s in results if s.startswith(STATUS_DRY_RUN)),
    }
    if not results:
        logger.log("scan.empty", LogLevel.INFO, msg="No matching video files found")
    logger.log("batch.summary", LogLevel.INFO,
               elapsed=time_util.format_elapsed(time.time() - started),
               **counts)
    return counts
