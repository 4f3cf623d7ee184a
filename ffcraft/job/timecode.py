"""Time string parsing shared by the argument builder and the progress decoder."""

import math
import re
from typing import Optional

# H+:MM:SS with an optional fraction, e.g. 00:01:23.45 or 123:00:00
HMS_RE = re.compile(r"(\d+):(\d{2}):(\d{2}(?:\.\d+)?)", re.ASCII)


def parse_hms_to_seconds(hms_text) -> Optional[float]:
    """
    Convert "H:MM:SS[.frac]" or a bare number of seconds to float seconds.

    Returns None when the text is neither, or when the result would be
    negative or non-finite.
    """
    text = str(hms_text).strip()
    match = HMS_RE.fullmatch(text)
    if match:
        hours, minutes, seconds = match.groups()
        return int(hours) * 3600 + int(minutes) * 60 + float(seconds)

    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_time_input(value) -> Optional[float]:
    """Parse a user-entered time value; None and empty strings mean "not set"."""
    if value is None or value == "":
        return None
    return parse_hms_to_seconds(value)
