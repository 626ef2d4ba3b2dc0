"""
Command-line entry point: compress every matching video under a folder to HEVC.

Example:
    compress-video -e mkv -s /mnt/myvideos -d /mnt/converted -b 2000
"""
import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional

import compress_video as package
from compress_video import transcode
from compress_video.utils import LogLevel, logger, system_util
from compress_video.utils.constants import (
    DEFAULT_BITRATE_KBPS,
    DEFAULT_ENCODER,
    EXIT_BAD_OPTION,
    EXIT_ENVIRONMENT,
    EXIT_FAILURES,
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_USAGE,
    FFMPEG_BIN,
    FFPROBE_BIN,
    LOG_FILE,
)


class _ArgumentParser(argparse.ArgumentParser):
    """Unknown options exit with 2, every other usage error with 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        code = EXIT_BAD_OPTION if message.startswith("unrecognized arguments") else EXIT_USAGE
        self.exit(code, f"{self.prog}: error: {message}\n")


def _bitrate(value: str) -> int:
    try:
        kbps = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"bitrate must be an integer number of kbps, got {value!r}")
    if kbps <= 0:
        raise argparse.ArgumentTypeError(f"bitrate must be positive, got {kbps}")
    return kbps


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="compress-video",
        description="Compress videos to x265 (HEVC) from one location to another recursively "
                    "without overwriting the destination.",
        epilog="Example: compress-video -e mkv -s /mnt/myvideos -d /mnt/converted -b 2000",
    )
    parser.add_argument("-e", dest="extension", metavar="EXTENSION", required=True,
                        help="File extension to filter on source. Eg: -e mkv")
    parser.add_argument("-s", dest="source", metavar="SOURCE", required=True,
                        help="Source folder to compress from. Eg: /mnt/myvideos")
    parser.add_argument("-d", dest="destination", metavar="DESTINATION", required=True,
                        help="Destination folder to compress to. Files are never overwritten. Eg: /mnt/converted")
    parser.add_argument("-b", dest="bitrate", metavar="BITRATE", type=_bitrate, default=DEFAULT_BITRATE_KBPS,
                        help=f"Video bitrate in kbps (default: {DEFAULT_BITRATE_KBPS})")
    parser.add_argument("--encoder", default=DEFAULT_ENCODER,
                        help=f"FFmpeg HEVC encoder (default: {DEFAULT_ENCODER}, used if the requested one is missing)")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be compressed without encoding")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--log-file", default=LOG_FILE,
                        help="Also append log records to this file (default: $COMPRESS_VIDEO_LOG_FILE)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {package.__version__}")
    return parser


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)

    args.extension = args.extension.lstrip(".")
    if not args.extension:
        parser.print_usage(sys.stderr)
        parser.exit(EXIT_USAGE, "Extension argument is required!\n")
    if not args.source:
        parser.print_usage(sys.stderr)
        parser.exit(EXIT_USAGE, "Source argument is required!\n")
    if not args.destination:
        parser.print_usage(sys.stderr)
        parser.exit(EXIT_USAGE, "Destination argument is required!\n")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        build_parser().print_help(sys.stderr)
        return EXIT_USAGE

    args = parse_args(argv)

    logger.set_log_level(LogLevel.DEBUG if args.debug else LogLevel.INFO)
    if args.log_file:
        log_path = logger.open_log_file(Path(args.log_file))
        logger.log("startup.log_file", LogLevel.DEBUG, path=str(log_path))

    try:
        return _run(args)
    finally:
        logger.close_log_file()


def _run(args: argparse.Namespace) -> int:
    if not args.dry_run:
        system_util.which_or_die(FFMPEG_BIN)
    system_util.which_or_die(FFPROBE_BIN)

    src_root = Path(args.source).expanduser().resolve()
    out_root = Path(args.destination).expanduser().resolve()
    if not src_root.is_dir():
        logger.log("startup.error", LogLevel.ERROR, msg="Source folder does not exist", src=str(src_root))
        return EXIT_ENVIRONMENT

    encoder = args.encoder if args.dry_run else transcode.select_encoder(args.encoder)
    config = transcode.RunConfig(
        extension=args.extension,
        source=src_root,
        destination=out_root,
        bitrate_kbps=args.bitrate,
        encoder=encoder,
        dry_run=args.dry_run,
    )
    logger.log("startup.config", LogLevel.INFO,
               src=str(config.source),
               dst=str(config.destination),
               extension=config.extension,
               bitrate=f"{config.bitrate_kbps}k",
               encoder=config.encoder,
               dry_run=config.dry_run)

    probe = transcode.FFprobeProbe()
    transcoder = transcode.FFmpegTranscoder(encoder=config.encoder, debug=args.debug)

    started = time.time()
    try:
        results = transcode.compress_tree(config, probe, transcoder)
    except KeyboardInterrupt:
        logger.log("batch.interrupted", LogLevel.WARN, msg="Stopped by user")
        return EXIT_INTERRUPTED

    counts = transcode.summarize(results, started)
    return EXIT_FAILURES if counts["fail"] else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
