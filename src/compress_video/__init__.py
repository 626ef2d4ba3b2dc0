"""
Batch HEVC compression of video trees.

This package walks a source directory for videos with a given extension and
writes HEVC (H.265) copies of them under a destination directory with the same
layout, using ffprobe to skip files that are already HEVC and ffmpeg to do the
encoding. Destination files are never overwritten.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
