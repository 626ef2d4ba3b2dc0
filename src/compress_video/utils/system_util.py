"""
Utility functions for running system commands and verifying binary availability.

Functions:
    - run_cmd: Executes a system command and returns its exit code along with its
      standard output and error streams.
    - which_or_die: Checks for the presence of a specific binary on the system's
      PATH and terminates the process if it is unavailable.
    - low_priority_kwargs: Popen keyword arguments that start a child process at
      reduced CPU scheduling priority.
"""
import os
import shutil
import subprocess
import sys
from typing import Any, Dict, List, Tuple

from compress_video.utils.constants import EXIT_ENVIRONMENT, NICE_LEVEL
from compress_video.utils.logger import LogLevel, log


def run_cmd(cmd: List[str]) -> Tuple[int, str, str]:
    """Run a command and return (code, stdout, stderr)."""
    try:
        p = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                           text=True, encoding="utf-8", errors="replace")
    except OSError as e:
        return 127, "", str(e)
    return p.returncode, p.stdout, p.stderr


def which_or_die(binary: str):
    """Check if a binary exists on PATH, exit if not found."""
    if shutil.which(binary) is None:
        log("startup.error", LogLevel.ERROR,
            msg="Required binary not found on PATH. Install ffmpeg first.",
            binary=binary)
        sys.exit(EXIT_ENVIRONMENT)


def low_priority_kwargs(nice_level: int = NICE_LEVEL) -> Dict[str, Any]:
    """Keyword arguments for subprocess.Popen that lower the child's CPU priority."""
    if os.name == "nt":
        return {"creationflags": subprocess.BELOW_NORMAL_PRIORITY_CLASS}

    def _lower_priority():
        os.nice(nice_level)

    return {"preexec_fn": _lower_priority}
