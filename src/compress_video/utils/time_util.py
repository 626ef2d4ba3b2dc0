from datetime import datetime, timedelta, timezone


def get_eta_single_file(total_frames: int, frames_done: int, fps: float) -> str:
    """ETA for the current transcode from the remaining frames and encode rate."""
    remaining_seconds = (total_frames - frames_done) / fps
    return _get_eta_string(remaining_seconds)


def format_elapsed(seconds: float) -> str:
    """Format a duration like 1h2m5s."""
    return _format_duration(seconds)


def _format_duration(time_in_seconds: float) -> str:
    hours = int(time_in_seconds // 3600)
    mins = int((time_in_seconds % 3600) // 60)
    secs = int(time_in_seconds % 60)
    if hours > 0:
        return f"{hours}h{mins}m{secs}s"
    elif mins > 0:
        return f"{mins}m{secs}s"
    return f"{secs}s"


def _get_eta_string(time_in_seconds: float) -> str:
    completion_time = (datetime.now(timezone.utc) + timedelta(
        seconds=time_in_seconds)).strftime("%Y-%m-%d %H:%M:%S")
    return f"{completion_time} ({_format_duration(time_in_seconds)})"
