"""
ffcraft command-line interface.

Jobs can be given as a JSON file (the same camelCase shape the web UI sends)
or assembled from flags:

    ffcraft preview --preset gif --input clip.mov --output clip.gif --start 3 --duration 4
    ffcraft run job.json
    ffcraft suggest clip.mov --preset mp3
"""

import argparse
import json
import logging
import sys

from ffcraft.config import load_config
from ffcraft.exceptions import FfcraftError, JobError, ProbeError
from ffcraft.job.builder import JOB_MODES, PRESETS, build_ffmpeg_args
from ffcraft.job.cmdline import format_command_preview
from ffcraft.job.paths import resolve_executable_path, suggest_output_path


def _load_job(args) -> dict:
    """Read the job from a JSON file/stdin, then apply any flag overrides."""
    job = {}
    if args.job:
        if args.job == "-":
            job = json.load(sys.stdin)
        else:
            with open(args.job, "r") as f:
                job = json.load(f)
        if not isinstance(job, dict):
            raise JobError("Job file must contain a JSON object")

    overrides = {
        "mode": args.mode,
        "preset": args.preset,
        "inputPath": args.input,
        "outputPath": args.output,
        "startTime": args.start,
        "duration": args.duration,
        "crf": args.crf,
        "rawArgs": args.raw,
    }
    job.update({key: value for key, value in overrides.items() if value is not None})

    if args.raw is not None and args.mode is None:
        job["mode"] = "raw"
    return job


def _add_job_arguments(parser):
    parser.add_argument("job", nargs="?", help="Path to a job JSON file ('-' for stdin)")
    parser.add_argument("--mode", choices=JOB_MODES, help="Job mode (default: preset)")
    parser.add_argument("--preset", help=f"Preset name ({', '.join(PRESETS)})")
    parser.add_argument("--input", help="Input file path")
    parser.add_argument("--output", help="Output file path")
    parser.add_argument("--start", help="Start time (HH:MM:SS[.frac] or seconds)")
    parser.add_argument("--duration", help="Duration (HH:MM:SS[.frac] or seconds)")
    parser.add_argument("--crf", type=int, help="Constant Rate Factor")
    parser.add_argument("--raw", help="Raw ffmpeg arguments with {input}/{output} placeholders")
    parser.add_argument("--ffmpeg", help="Path to the ffmpeg executable")
    parser.add_argument("--ffprobe", help="Path to the ffprobe executable")


def _print_event(event, payload):
    from ffcraft.transcoder import LOG_EVENT, PROGRESS_EVENT, STATE_EVENT

    if event == PROGRESS_EVENT:
        ratio = payload.get("ratio")
        if ratio is not None:
            print(f"\rProgress: {int(ratio * 100)}%", end="", flush=True)
        else:
            print(f"\rTime: {payload.get('currentTimeSec')}s", end="", flush=True)
    elif event == STATE_EVENT:
        status = payload.get("status")
        if status == "running":
            print(f"Running: {payload.get('args')}")
        elif status == "completed":
            print("\n[✓] Transcoding completed successfully!")
        elif status == "stopped":
            print("\n[!] Transcoding stopped")
        elif status == "failed":
            print(f"\n[✗] Transcoding failed: {payload.get('message')}")
    elif event == LOG_EVENT:
        logging.debug(payload.get("line"))


def cli_main(argv=None):
    """Command-line interface entry point."""
    parser = argparse.ArgumentParser(description="Build, preview and run ffmpeg jobs")
    subparsers = parser.add_subparsers(dest="command")

    preview_parser = subparsers.add_parser("preview", help="Print the ffmpeg command for a job")
    _add_job_arguments(preview_parser)
    preview_parser.add_argument("--json", action="store_true", help="Print the argument vector as JSON")

    run_parser = subparsers.add_parser("run", help="Run ffmpeg for a job")
    _add_job_arguments(run_parser)

    suggest_parser = subparsers.add_parser("suggest", help="Suggest an output path")
    suggest_parser.add_argument("input", help="Path to input file")
    suggest_parser.add_argument("--preset", default="h264", help="Preset name")

    probe_parser = subparsers.add_parser("probe", help="Show media information")
    probe_parser.add_argument("input", help="Path to input file")
    probe_parser.add_argument("--ffprobe", help="Path to the ffprobe executable")

    subparsers.add_parser("serve", help="Start the web server")

    args = parser.parse_args(argv)
    config = load_config()

    if args.command in ("preview", "run"):
        try:
            job = _load_job(args)
            ffmpeg_path = resolve_executable_path(args.ffmpeg or config.ffmpeg_path, "ffmpeg")
            if args.command == "preview":
                ffmpeg_args = build_ffmpeg_args(job)
                if args.json:
                    print(json.dumps(ffmpeg_args))
                else:
                    print(format_command_preview(ffmpeg_path, ffmpeg_args))
                return 0

            from ffcraft.transcoder import TranscodeRunner

            ffprobe_path = resolve_executable_path(args.ffprobe or config.ffprobe_path, "ffprobe")
            runner = TranscodeRunner(emit=_print_event, stop_timeout=config.stop_timeout)
            task = runner.run(job, ffmpeg_path=ffmpeg_path, ffprobe_path=ffprobe_path)
            try:
                status = task.wait()
            except KeyboardInterrupt:
                runner.stop()
                status = task.wait()
            return 0 if status == "completed" else 1
        except (OSError, json.JSONDecodeError, FfcraftError) as e:
            print(f"[✗] {e}")
            return 1
    elif args.command == "suggest":
        print(suggest_output_path(args.input, args.preset))
        return 0
    elif args.command == "probe":
        from ffcraft.probe import probe_media

        ffprobe_path = resolve_executable_path(args.ffprobe or config.ffprobe_path, "ffprobe")
        try:
            print(json.dumps(probe_media(ffprobe_path, args.input), indent=2))
        except ProbeError as e:
            print(f"[✗] {e}")
            return 1
        return 0
    elif args.command == "serve":
        # Imported here so eventlet patches the stdlib before the app and runner load
        from ffcraft.server import serve
        serve()
        return 0

    parser.print_help()
    return 1


def main():
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
