"""
Building ffmpeg argument vectors from job descriptions.

A job is one of three modes:

- preset: a fixed flag set per preset name (h264, h265, mp3, gif)
- visual: per-field overrides reconciled against the preset defaults table
- raw: a user-written argument template with {input}/{output} placeholders

The UI talks to this module with camelCase JSON mappings; parse_job turns a
mapping into the matching job dataclass and build_ffmpeg_args accepts either.
Nothing here touches the file system or spawns processes.
"""

import math
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

from ffcraft.exceptions import UnsupportedPresetError, ValidationError
from ffcraft.job.cmdline import split_command_line

INPUT_PLACEHOLDER = "{input}"
OUTPUT_PLACEHOLDER = "{output}"

JOB_MODES = ("preset", "visual", "raw")

PRESETS = ("h264", "h265", "mp3", "gif")

# Fallback values for visual mode, used only where the job leaves a field unset
VISUAL_PRESET_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "h264": {
        "video_codec": "libx264",
        "speed_preset": "medium",
        "crf": 23,
        "audio_codec": "aac",
        "audio_bitrate": "192k",
    },
    "h265": {
        "video_codec": "libx265",
        "speed_preset": "medium",
        "crf": 28,
        "audio_codec": "aac",
        "audio_bitrate": "160k",
    },
    "mp3": {
        "disable_video": True,
        "audio_codec": "libmp3lame",
        "audio_quality": "2",
    },
    "gif": {
        "disable_audio": True,
        "fps": 12,
        "scale_width": 480,
        "loop": "0",
    },
}


@dataclass(frozen=True)
class ExtraArg:
    """A free-form option appended at the end of a visual job."""
    key: Any = None
    value: Any = None
    enabled: Any = True


@dataclass(frozen=True)
class PresetJob:
    MODE: ClassVar[str] = "preset"

    input_path: Any = None
    output_path: Any = None
    preset: Any = None
    start_time: Any = None
    duration: Any = None
    crf: Any = 23
    fps: Any = 12
    scale_width: Any = 480


@dataclass(frozen=True)
class VisualJob:
    MODE: ClassVar[str] = "visual"

    input_path: Any = None
    output_path: Any = None
    preset: Any = None
    start_time: Any = None
    duration: Any = None
    crf: Any = None
    fps: Any = None
    scale_width: Any = None
    overwrite: Any = None
    speed_preset: Any = None
    video_codec: Any = None
    audio_codec: Any = None
    pixel_format: Any = None
    video_bitrate: Any = None
    audio_bitrate: Any = None
    audio_quality: Any = None
    scale_height: Any = None
    sample_rate: Any = None
    channels: Any = None
    threads: Any = None
    format: Any = None
    map: Any = None
    loop: Any = None
    video_filter: Any = None
    movflags_faststart: Any = None
    disable_video: Any = None
    disable_audio: Any = None
    extra_args: Tuple[ExtraArg, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RawJob:
    MODE: ClassVar[str] = "raw"

    raw_args: Any = None
    input_path: Any = None
    output_path: Any = None


Job = Union[PresetJob, VisualJob, RawJob]

_COMMON_FIELDS = (
    ("inputPath", "input_path"),
    ("outputPath", "output_path"),
)

_PRESET_FIELDS = _COMMON_FIELDS + (
    ("preset", "preset"),
    ("startTime", "start_time"),
    ("duration", "duration"),
    ("crf", "crf"),
    ("fps", "fps"),
    ("scaleWidth", "scale_width"),
)

_VISUAL_FIELDS = _PRESET_FIELDS + (
    ("overwrite", "overwrite"),
    ("speedPreset", "speed_preset"),
    ("videoCodec", "video_codec"),
    ("audioCodec", "audio_codec"),
    ("pixelFormat", "pixel_format"),
    ("videoBitrate", "video_bitrate"),
    ("audioBitrate", "audio_bitrate"),
    ("audioQuality", "audio_quality"),
    ("scaleHeight", "scale_height"),
    ("sampleRate", "sample_rate"),
    ("channels", "channels"),
    ("threads", "threads"),
    ("format", "format"),
    ("map", "map"),
    ("loop", "loop"),
    ("videoFilter", "video_filter"),
    ("movflagsFaststart", "movflags_faststart"),
    ("disableVideo", "disable_video"),
    ("disableAudio", "disable_audio"),
)

_RAW_FIELDS = _COMMON_FIELDS + (("rawArgs", "raw_args"),)


def resolve_mode(payload: Optional[Mapping[str, Any]]) -> str:
    """Return the job mode named by a payload; anything unrecognised is "preset"."""
    mode = payload.get("mode") if payload else None
    return mode if mode in ("raw", "visual") else "preset"


def _pick_fields(payload: Mapping[str, Any], fields) -> Dict[str, Any]:
    # None counts as "not provided" so dataclass defaults apply
    return {attr: payload[key] for key, attr in fields if payload.get(key) is not None}


def _parse_extra_args(raw) -> Tuple[ExtraArg, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()

    options = []
    for option in raw:
        if isinstance(option, ExtraArg):
            options.append(option)
        elif isinstance(option, Mapping):
            options.append(ExtraArg(
                key=option.get("key"),
                value=option.get("value"),
                enabled=option.get("enabled", True),
            ))
    return tuple(options)


def parse_job(payload: Optional[Mapping[str, Any]]) -> Job:
    """
    Convert a camelCase job mapping (as sent by the UI) into a job dataclass.

    Args:
        payload: The job mapping; None is treated as an empty preset job

    Returns:
        A PresetJob, VisualJob or RawJob depending on payload["mode"]
    """
    payload = payload or {}
    mode = resolve_mode(payload)

    if mode == "raw":
        return RawJob(**_pick_fields(payload, _RAW_FIELDS))

    if mode == "visual":
        return VisualJob(
            extra_args=_parse_extra_args(payload.get("extraArgs")),
            **_pick_fields(payload, _VISUAL_FIELDS),
        )

    return PresetJob(**_pick_fields(payload, _PRESET_FIELDS))


def _format_number(value: float) -> str:
    """Render a number the way the UI shows it: 23.0 -> "23", 0.5 -> "0.5"."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return str(value)


def _to_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_number(value)
    return str(value)


def has_value(value) -> bool:
    """True when value is set and not blank; numeric 0 and False count as set."""
    if value is None:
        return False
    return _to_text(value).strip() != ""


def text_value(value) -> str:
    """The trimmed text form of value, or "" when it has no value."""
    if not has_value(value):
        return ""
    return _to_text(value).strip()


def number_value(value) -> Optional[float]:
    """Parse value as a finite number, or None."""
    if not has_value(value):
        return None

    try:
        if isinstance(value, (int, float)):
            parsed = float(value)
        else:
            parsed = float(text_value(value))
    except (TypeError, ValueError, OverflowError):
        return None
    return parsed if math.isfinite(parsed) else None


def first_present(*values):
    """Return the first value that is neither None nor an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_positive_or_none(value: Optional[float]) -> Optional[int]:
    if value is None or not math.isfinite(value) or value <= 0:
        return None
    return _round_half_up(value)


def _number_text(value) -> str:
    try:
        return _format_number(float(value))
    except OverflowError:
        return "Infinity" if value > 0 else "-Infinity"
    except (TypeError, ValueError):
        return "NaN"


def _push_trim_args(args: List[str], start_time, duration) -> None:
    if start_time:
        args.extend(["-ss", _to_text(start_time)])

    if duration:
        args.extend(["-t", _to_text(duration)])


def _push_option_if_value(args: List[str], key: str, value) -> None:
    text = text_value(value)
    if text:
        args.extend([key, text])


def _build_preset_args(job: PresetJob) -> List[str]:
    if not job.input_path or not job.output_path:
        raise ValidationError("inputPath and outputPath are required")

    args = ["-y"]
    _push_trim_args(args, job.start_time, job.duration)
    args.extend(["-i", str(job.input_path)])

    if job.preset == "h264":
        args.extend([
            "-c:v", "libx264",
            "-preset", "medium",
            "-crf", _to_text(job.crf),
            "-c:a", "aac",
            "-b:a", "192k",
        ])
    elif job.preset == "h265":
        args.extend([
            "-c:v", "libx265",
            "-preset", "medium",
            "-crf", _to_text(job.crf),
            "-c:a", "aac",
            "-b:a", "160k",
        ])
    elif job.preset == "mp3":
        args.extend(["-vn", "-c:a", "libmp3lame", "-q:a", "2"])
    elif job.preset == "gif":
        args.extend([
            "-vf", f"fps={_number_text(job.fps)},scale={_number_text(job.scale_width)}:-1:flags=lanczos",
            "-loop", "0",
        ])
    else:
        raise UnsupportedPresetError(f"Unsupported preset: {job.preset}")

    args.append(str(job.output_path))
    return args


def _build_raw_args(job: RawJob) -> List[str]:
    raw_args_text = text_value(job.raw_args)
    if not raw_args_text:
        raise ValidationError("rawArgs is required for raw mode")

    tokens = split_command_line(raw_args_text)
    needs_input = any(INPUT_PLACEHOLDER in token for token in tokens)
    needs_output = any(OUTPUT_PLACEHOLDER in token for token in tokens)

    if needs_input and not job.input_path:
        raise ValidationError(f"inputPath is required because raw args contain {INPUT_PLACEHOLDER}")

    if needs_output and not job.output_path:
        raise ValidationError(f"outputPath is required because raw args contain {OUTPUT_PLACEHOLDER}")

    input_path = "" if job.input_path is None else str(job.input_path)
    output_path = "" if job.output_path is None else str(job.output_path)
    return [
        token.replace(INPUT_PLACEHOLDER, input_path).replace(OUTPUT_PLACEHOLDER, output_path)
        for token in tokens
    ]


def _build_visual_args(job: VisualJob) -> List[str]:
    input_path = text_value(job.input_path)
    output_path = text_value(job.output_path)

    if not input_path or not output_path:
        raise ValidationError("inputPath and outputPath are required")

    preset = text_value(job.preset) or "h264"
    defaults = VISUAL_PRESET_DEFAULTS.get(preset, VISUAL_PRESET_DEFAULTS["h264"])
    args = []

    if job.overwrite is not False:
        args.append("-y")

    _push_trim_args(args, text_value(job.start_time), text_value(job.duration))
    args.extend(["-i", input_path])

    disable_video = bool(job.disable_video) or bool(defaults.get("disable_video"))
    disable_audio = bool(job.disable_audio) or bool(defaults.get("disable_audio"))

    video_codec = first_present(text_value(job.video_codec), text_value(defaults.get("video_codec"))) or ""
    audio_codec = first_present(text_value(job.audio_codec), text_value(defaults.get("audio_codec"))) or ""

    if disable_video or video_codec == "none":
        args.append("-vn")
    else:
        if video_codec and video_codec != "auto":
            args.extend(["-c:v", video_codec])

        speed_preset = first_present(text_value(job.speed_preset), text_value(defaults.get("speed_preset")))
        if speed_preset and video_codec != "copy":
            args.extend(["-preset", speed_preset])

        crf = first_present(number_value(job.crf), number_value(defaults.get("crf")))
        if crf is not None and video_codec != "copy":
            args.extend(["-crf", _format_number(crf)])

        _push_option_if_value(args, "-b:v", job.video_bitrate)

    if disable_audio or audio_codec == "none":
        args.append("-an")
    else:
        if audio_codec and audio_codec != "auto":
            args.extend(["-c:a", audio_codec])

        audio_bitrate = first_present(text_value(job.audio_bitrate), text_value(defaults.get("audio_bitrate")))
        if audio_bitrate:
            args.extend(["-b:a", audio_bitrate])

        audio_quality = first_present(text_value(job.audio_quality), text_value(defaults.get("audio_quality")))
        if audio_quality:
            args.extend(["-q:a", audio_quality])

        sample_rate = round_positive_or_none(number_value(job.sample_rate))
        if sample_rate:
            args.extend(["-ar", str(sample_rate)])

        channels = round_positive_or_none(number_value(job.channels))
        if channels:
            args.extend(["-ac", str(channels)])

    filters = []
    fps = first_present(number_value(job.fps), number_value(defaults.get("fps")))
    if fps is not None and fps > 0:
        filters.append(f"fps={_format_number(fps)}")

    scale_width = first_present(number_value(job.scale_width), number_value(defaults.get("scale_width")))
    scale_height = first_present(number_value(job.scale_height), number_value(defaults.get("scale_height")))
    if scale_width is not None or scale_height is not None:
        width = _round_half_up(scale_width) if scale_width is not None else -1
        height = _round_half_up(scale_height) if scale_height is not None else -1
        filters.append(f"scale={width}:{height}:flags=lanczos")

    custom_video_filter = text_value(job.video_filter)
    if custom_video_filter:
        filters.append(custom_video_filter)

    if filters:
        args.extend(["-vf", ",".join(filters)])

    # An explicit loop value wins even when it is falsy (e.g. 0); only unset or blank falls back
    loop = text_value(job.loop) if has_value(job.loop) else text_value(defaults.get("loop"))
    if loop:
        args.extend(["-loop", loop])

    _push_option_if_value(args, "-pix_fmt", job.pixel_format)

    if job.movflags_faststart:
        args.extend(["-movflags", "+faststart"])

    threads = round_positive_or_none(number_value(job.threads))
    if threads:
        args.extend(["-threads", str(threads)])

    _push_option_if_value(args, "-f", job.format)
    _push_option_if_value(args, "-map", job.map)

    for option in job.extra_args or ():
        if not option or option.enabled is False:
            continue

        key_raw = text_value(option.key)
        if not key_raw:
            continue

        args.append(key_raw if key_raw.startswith("-") else f"-{key_raw}")

        value = text_value(option.value)
        if value:
            args.append(value)

    args.append(output_path)
    return args


def build_ffmpeg_args(job: Union[Job, Mapping[str, Any], None]) -> List[str]:
    """
    Build the ffmpeg argument vector (without the executable) for a job.

    Args:
        job: A PresetJob, VisualJob or RawJob, or a camelCase mapping for parse_job

    Returns:
        The ordered list of arguments; the output path is last in preset and visual mode

    Raises:
        CommandLineParseError: If raw-mode arguments cannot be tokenized
        ValidationError: If a path required by the mode is missing
        UnsupportedPresetError: If preset mode names an unknown preset
    """
    if job is None or isinstance(job, Mapping):
        job = parse_job(job)

    if isinstance(job, RawJob):
        return _build_raw_args(job)
    if isinstance(job, VisualJob):
        return _build_visual_args(job)
    if isinstance(job, PresetJob):
        return _build_preset_args(job)

    raise TypeError(f"Unsupported job type: {type(job).__name__}")
