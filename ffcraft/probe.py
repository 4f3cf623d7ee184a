"""Media inspection with ffprobe."""

import json
import logging
import math
import subprocess
from typing import Any, Dict, Mapping, Optional

from ffcraft.exceptions import ProbeError
from ffcraft.job.paths import format_spawn_error
from ffcraft.job.timecode import parse_time_input

logger = logging.getLogger(__name__)


def _finite_or_none(value) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def get_file_info(input_file: str, ffprobe_path: str = "ffprobe") -> Dict[str, Any]:
    """
    Run ffprobe on a file and return its parsed JSON output.

    Raises:
        ProbeError: If ffprobe cannot be started, exits non-zero or prints invalid JSON
    """
    cmd = [
        ffprobe_path,
        "-v", "error",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_file),
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, encoding="utf-8", errors="replace")
    except OSError as e:
        raise ProbeError(format_spawn_error(e, "ffprobe", ffprobe_path)) from e

    if result.returncode != 0:
        stderr_tail = (result.stderr or "").strip()[-1000:]
        raise ProbeError(stderr_tail or f"{ffprobe_path} exited with code {result.returncode}")

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise ProbeError("ffprobe returned invalid JSON output") from e


def probe_media(ffprobe_path: str, input_path: str) -> Dict[str, Any]:
    """
    Summarise a media file's container and streams.

    Returns:
        A dict with file, formatName, durationSec, sizeBytes, bitRate and streams
    """
    info = get_file_info(input_path, ffprobe_path)
    fmt = info.get("format") or {}
    streams = info.get("streams")

    return {
        "file": input_path,
        "formatName": fmt.get("format_name", ""),
        "durationSec": _finite_or_none(fmt.get("duration")),
        "sizeBytes": _finite_or_none(fmt.get("size")),
        "bitRate": _finite_or_none(fmt.get("bit_rate")),
        "streams": [
            {
                "index": stream.get("index"),
                "codecType": stream.get("codec_type"),
                "codecName": stream.get("codec_name"),
                "width": stream.get("width"),
                "height": stream.get("height"),
                "sampleRate": stream.get("sample_rate"),
                "channels": stream.get("channels"),
                "bitRate": stream.get("bit_rate"),
            }
            for stream in streams
        ] if isinstance(streams, list) else [],
    }


def resolve_duration_sec(payload: Mapping[str, Any], ffprobe_path: str) -> Optional[float]:
    """
    Work out the total duration used to turn progress times into ratios.

    A positive trim duration on the job wins; otherwise the input is probed.
    Probe failures are logged and give None.
    """
    manual_duration = parse_time_input(payload.get("duration"))
    if manual_duration and manual_duration > 0:
        return manual_duration

    input_path = payload.get("inputPath")
    if not input_path:
        return None

    try:
        return probe_media(ffprobe_path, input_path)["durationSec"]
    except ProbeError as e:
        logger.warning(f"Could not get duration for {input_path}: {e}")
        return None
