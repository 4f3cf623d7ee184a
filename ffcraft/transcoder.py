"""Running ffmpeg for a job and streaming its progress."""

import codecs
import logging
import re
import subprocess
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

from ffcraft.exceptions import ProcessStartError, TaskAlreadyRunningError
from ffcraft.job.builder import build_ffmpeg_args, resolve_mode
from ffcraft.job.cmdline import format_command_preview
from ffcraft.job.paths import format_spawn_error
from ffcraft.job.progress import parse_progress
from ffcraft.probe import resolve_duration_sec

# Configure logging
logger = logging.getLogger(__name__)

STATE_EVENT = "ffmpeg:state"
LOG_EVENT = "ffmpeg:log"
PROGRESS_EVENT = "ffmpeg:progress"

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")

Emitter = Callable[[str, Dict[str, Any]], None]


class LineSplitter:
    """
    Split a byte stream into text lines as chunks arrive.

    ffmpeg ends its stats line with a bare carriage return, so \\r, \\n and
    \\r\\n all count as line ends.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._buffer += self._decoder.decode(chunk)
        lines = _LINE_BREAK_RE.split(self._buffer)
        self._buffer = lines.pop()
        return lines

    def flush(self) -> List[str]:
        rest = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return [rest] if rest else []


class TranscodeTask:
    """
    One running ffmpeg process.

    Attributes:
        process (subprocess.Popen): The ffmpeg child process
        command (str): Preview string of the command that was started
        duration_sec (Optional[float]): Total duration used for progress ratios
        mode (str): Job mode the arguments were built from
        status (str): running, completed, stopped or failed
        returncode (Optional[int]): Exit code once the process has finished
    """

    def __init__(self, process: subprocess.Popen, command: str, duration_sec: Optional[float], mode: str):
        self.process = process
        self.command = command
        self.duration_sec = duration_sec
        self.mode = mode
        self.status = "running"
        self.returncode = None
        self.stop_requested = False
        self._done = threading.Event()

    def terminate(self, timeout: float = 5.0):
        """Terminate the process, killing it if it does not exit within timeout."""
        if self.process.poll() is not None:
            return
        self.stop_requested = True
        self.process.terminate()
        try:
            self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            self.process.kill()

    def wait(self, timeout: Optional[float] = None) -> str:
        """Block until the task has finished (or timeout elapses) and return its status."""
        self._done.wait(timeout)
        return self.status


class TranscodeRunner:
    """
    Starts ffmpeg for one job at a time and publishes its output.

    Events are passed to emit(event, payload): STATE_EVENT for status changes,
    LOG_EVENT for every non-blank stderr line and PROGRESS_EVENT for each
    decoded progress sample.
    """

    def __init__(self, emit: Optional[Emitter] = None, stop_timeout: float = 5.0):
        self._emit = emit or (lambda event, payload: None)
        self.stop_timeout = stop_timeout
        self._lock = threading.Lock()
        self._active: Optional[TranscodeTask] = None
        self._starting = False

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._active is not None or self._starting

    @property
    def active_task(self) -> Optional[TranscodeTask]:
        with self._lock:
            return self._active

    def run(self, payload: Mapping[str, Any], ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe") -> TranscodeTask:
        """
        Build arguments for a job and start ffmpeg in the background.

        Args:
            payload: camelCase job mapping
            ffmpeg_path: Resolved ffmpeg executable
            ffprobe_path: Resolved ffprobe executable, used to find the input duration

        Returns:
            The started TranscodeTask

        Raises:
            TaskAlreadyRunningError: If another task is active
            JobError: If the job cannot be turned into arguments
            ProcessStartError: If ffmpeg cannot be spawned
        """
        payload = payload or {}
        with self._lock:
            if self._active is not None or self._starting:
                raise TaskAlreadyRunningError("A transcode is already running; stop it before starting a new one.")
            self._starting = True

        try:
            args = build_ffmpeg_args(payload)
            duration_sec = resolve_duration_sec(payload, ffprobe_path)
            command = format_command_preview(ffmpeg_path, args)
            mode = resolve_mode(payload)

            self._emit(STATE_EVENT, {"status": "running", "mode": mode, "args": command})
            logger.info(f"Starting ffmpeg ({mode}): {command}")

            try:
                process = subprocess.Popen(
                    [ffmpeg_path] + args,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.PIPE,
                    bufsize=0,
                )
            except OSError as e:
                message = format_spawn_error(e, "ffmpeg", ffmpeg_path)
                logger.error(message)
                self._emit(STATE_EVENT, {"status": "failed", "message": message})
                raise ProcessStartError(message) from e

            task = TranscodeTask(process, command, duration_sec, mode)
            with self._lock:
                self._active = task
        finally:
            with self._lock:
                self._starting = False

        reader = threading.Thread(target=self._watch, args=(task,), daemon=True)
        reader.start()
        return task

    def stop(self) -> bool:
        """Terminate the active task. Returns False when nothing is running."""
        task = self.active_task
        if task is None:
            return False

        logger.info("Stopping active ffmpeg task")
        task.terminate(self.stop_timeout)
        return True

    def _watch(self, task: TranscodeTask):
        splitter = LineSplitter()
        stream = task.process.stderr

        try:
            for chunk in iter(lambda: stream.read(4096), b""):
                for line in splitter.feed(chunk):
                    self._handle_line(task, line)
            for line in splitter.flush():
                self._handle_line(task, line)
        finally:
            stream.close()
            self._finish(task, task.process.wait())

    def _handle_line(self, task: TranscodeTask, line: str):
        if not line.strip():
            return

        self._emit(LOG_EVENT, {"line": line})
        sample = parse_progress(line, task.duration_sec)
        if sample:
            self._emit(PROGRESS_EVENT, sample.to_dict())

    def _finish(self, task: TranscodeTask, returncode: int):
        with self._lock:
            if self._active is task:
                self._active = None

        task.returncode = returncode
        if task.stop_requested:
            task.status = "stopped"
            self._emit(STATE_EVENT, {"status": "stopped"})
        elif returncode == 0:
            task.status = "completed"
            self._emit(PROGRESS_EVENT, {"ratio": 1, "currentTimeSec": task.duration_sec})
            self._emit(STATE_EVENT, {"status": "completed"})
        else:
            task.status = "failed"
            message = f"ffmpeg exited with code {returncode}"
            logger.warning(message)
            self._emit(STATE_EVENT, {"status": "failed", "message": message})

        task._done.set()
