"""API blueprint for ffcraft."""

import logging

from flask import Blueprint, current_app, jsonify, request

from ffcraft.config import load_config
from ffcraft.exceptions import JobError, ProbeError, ProcessStartError, TaskAlreadyRunningError, ValidationError
from ffcraft.job.builder import PRESETS, VISUAL_PRESET_DEFAULTS, build_ffmpeg_args
from ffcraft.job.cmdline import format_command_preview
from ffcraft.job.paths import PRESET_OUTPUT_EXT, names_tool, resolve_executable_path, suggest_output_path
from ffcraft.probe import probe_media

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def _runner():
    return current_app.extensions["ffcraft.runner"]


def _requested_executable(data, key, tool_name, configured_path):
    requested = str(data.get(key) or "").strip()
    if not requested:
        return resolve_executable_path(configured_path, tool_name)

    # Only the ffmpeg tools themselves may be launched on behalf of a request
    if not names_tool(requested, tool_name):
        raise ValidationError(f"{key} must point to a {tool_name} executable")
    return resolve_executable_path(requested, tool_name)


def _executables(data):
    """
    Resolve the ffmpeg and ffprobe paths for a request, preferring request overrides.

    Raises:
        ValidationError: If an override names some other program
    """
    config = load_config()
    ffmpeg_path = _requested_executable(data, "ffmpegPath", "ffmpeg", config.ffmpeg_path)
    ffprobe_path = _requested_executable(data, "ffprobePath", "ffprobe", config.ffprobe_path)
    return ffmpeg_path, ffprobe_path


@api_bp.route("/presets", methods=["GET"])
def list_presets():
    """List the presets and their visual-mode defaults."""
    return jsonify(
        {
            "presets": [
                {
                    "name": name,
                    "extension": PRESET_OUTPUT_EXT[name],
                    "defaults": VISUAL_PRESET_DEFAULTS[name],
                }
                for name in PRESETS
            ],
            "default": load_config().default_preset,
        }
    )


@api_bp.route("/suggest-output", methods=["POST"])
def suggest_output():
    """Suggest an output path for an input file and preset."""
    data = request.get_json(silent=True) or {}
    preset = data.get("preset") or load_config().default_preset
    return jsonify({"outputPath": suggest_output_path(data.get("inputPath") or "", preset)})


@api_bp.route("/probe", methods=["POST"])
def probe():
    """Inspect an input file with ffprobe."""
    data = request.get_json(silent=True) or {}
    input_path = (data.get("inputPath") or "").strip()
    if not input_path:
        return jsonify({"error": "Missing inputPath"}), 400

    try:
        _, ffprobe_path = _executables(data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        return jsonify(probe_media(ffprobe_path, input_path))
    except ProbeError as e:
        logger.warning(f"Probe failed for {input_path}: {e}")
        return jsonify({"error": str(e)}), 502


@api_bp.route("/preview", methods=["POST"])
def preview():
    """Build the argument vector for a job without running it."""
    data = request.get_json(silent=True) or {}
    ffmpeg_path = (data.get("ffmpegPath") or load_config().ffmpeg_path).strip() or "ffmpeg"

    # Unset paths render as placeholders so an incomplete form still previews
    preview_payload = dict(data)
    preview_payload["inputPath"] = (data.get("inputPath") or "").strip() or "{input}"
    preview_payload["outputPath"] = (data.get("outputPath") or "").strip() or "{output}"

    try:
        args = build_ffmpeg_args(preview_payload)
    except JobError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"args": args, "command": format_command_preview(ffmpeg_path, args)})


@api_bp.route("/run", methods=["POST"])
def run():
    """Start a transcode for a job."""
    data = request.get_json(silent=True) or {}
    try:
        ffmpeg_path, ffprobe_path = _executables(data)
        task = _runner().run(data, ffmpeg_path=ffmpeg_path, ffprobe_path=ffprobe_path)
    except TaskAlreadyRunningError as e:
        return jsonify({"error": str(e)}), 409
    except JobError as e:
        return jsonify({"error": str(e)}), 400
    except ProcessStartError as e:
        return jsonify({"error": str(e)}), 500

    return jsonify({"started": True, "mode": task.mode, "command": task.command})


@api_bp.route("/stop", methods=["POST"])
def stop():
    """Stop the running transcode, if any."""
    return jsonify({"stopped": _runner().stop()})


@api_bp.route("/status", methods=["GET"])
def status():
    """Report whether a transcode is running."""
    task = _runner().active_task
    return jsonify(
        {
            "running": _runner().is_running,
            "command": task.command if task else None,
        }
    )
