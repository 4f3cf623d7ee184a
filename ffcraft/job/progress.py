"""Decoding ffmpeg's stderr lines into progress samples."""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ffcraft.job.timecode import parse_hms_to_seconds

# Pattern for the time field of ffmpeg's stats line (e.g., time=00:01:23.45 or time=83.45)
TIME_RE = re.compile(r"time=\s*(\d+:\d{2}:\d{2}(?:\.\d+)?|\d+(?:\.\d+)?)", re.ASCII)


@dataclass(frozen=True)
class ProgressSample:
    """Elapsed output time and, when the total duration is known, the completed ratio."""
    current_time_sec: float
    ratio: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"currentTimeSec": self.current_time_sec, "ratio": self.ratio}


def parse_progress(stderr_line: str, duration_sec: Optional[float]) -> Optional[ProgressSample]:
    """
    Extract a progress sample from one line of ffmpeg diagnostic output.

    Args:
        stderr_line: A single line from ffmpeg's stderr
        duration_sec: Total duration of the processed range in seconds, if known

    Returns:
        A ProgressSample, or None when the line carries no usable time field
    """
    match = TIME_RE.search(str(stderr_line))
    if not match:
        return None

    current_time_sec = parse_hms_to_seconds(match.group(1))
    if current_time_sec is None:
        return None

    if not duration_sec or not math.isfinite(duration_sec) or duration_sec <= 0:
        return ProgressSample(current_time_sec=current_time_sec, ratio=None)

    return ProgressSample(
        current_time_sec=current_time_sec,
        ratio=min(1.0, current_time_sec / duration_sec),
    )
