"""Path helpers: default output names and locating the ffmpeg executables."""

import errno
import os
from typing import Callable, Optional

PRESET_OUTPUT_EXT = {
    "h264": ".mp4",
    "h265": ".mp4",
    "mp3": ".mp3",
    "gif": ".gif",
}

# Install locations that are often missing from PATH when launched from a desktop session
COMMON_BINARY_DIRS = (
    "/opt/homebrew/bin",
    "/usr/local/bin",
    "/usr/bin",
    "/opt/local/bin",
)


def suggest_output_path(input_path: Optional[str], preset: Optional[str]) -> str:
    """
    Derive a default output path next to the input file.

    Example: ("/a/b/video.mov", "h264") -> "/a/b/video_converted.mp4"
    """
    if not input_path:
        return ""

    # "/a/b/" is treated like "/a/b"
    trimmed = input_path.rstrip("/" + os.sep) or input_path
    directory, filename = os.path.split(trimmed)
    stem, _ = os.path.splitext(filename)
    extension = PRESET_OUTPUT_EXT.get(preset, ".mp4")
    return os.path.join(directory, f"{stem}_converted{extension}")


def resolve_executable_path(
    configured_path: Optional[str],
    tool_name: str,
    exists: Callable[[str], bool] = os.path.exists,
) -> str:
    """
    Resolve the executable to spawn for a tool such as ffmpeg or ffprobe.

    Args:
        configured_path: Path or bare command name from settings (blank means tool_name)
        tool_name: Name of the tool, used as fallback
        exists: Predicate used to test candidate paths

    Returns:
        The configured path when it names a location, the first existing
        well-known install path for a bare name, or the bare name itself
    """
    name = (configured_path or "").strip() or tool_name
    if "/" in name or os.sep in name:
        return name

    for directory in COMMON_BINARY_DIRS:
        candidate = os.path.join(directory, name)
        if exists(candidate):
            return candidate

    return name


def names_tool(path: Optional[str], tool_name: str) -> bool:
    """True when path points at tool_name itself, e.g. /opt/homebrew/bin/ffmpeg or ffmpeg.exe."""
    basename = os.path.basename((path or "").strip().replace("\\", "/"))
    stem, extension = os.path.splitext(basename)
    if extension.lower() == ".exe":
        basename = stem
    return basename == tool_name


def format_spawn_error(error: BaseException, tool_name: str, configured_path: Optional[str]) -> str:
    """Build a user-facing message for a failed process spawn."""
    path_text = configured_path or tool_name
    missing = isinstance(error, FileNotFoundError) or getattr(error, "errno", None) == errno.ENOENT
    if missing:
        return (
            f"Could not find the {tool_name} executable (configured path: {path_text}). "
            f"Install FFmpeg (for example with `brew install ffmpeg` or your package manager) "
            f"or set the full path to the binary, e.g. /opt/homebrew/bin/{tool_name}."
        )

    return f"Failed to start {tool_name} ({path_text}): {error}"
