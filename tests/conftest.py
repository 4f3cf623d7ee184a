"""Shared fixtures for the ffcraft test-suite."""

import io
import os
from types import SimpleNamespace

import pytest

from ffcraft.exceptions import TaskAlreadyRunningError
from ffcraft.job.builder import build_ffmpeg_args, resolve_mode
from ffcraft.job.cmdline import format_command_preview


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point CONFIG_PATH at an empty temp dir so tests never read a real config."""
    path = tmp_path / "config" / "config.json"
    monkeypatch.setenv("CONFIG_PATH", str(path))
    return path


class FakeProcess:
    """Stand-in for subprocess.Popen.

    With blocking=True stderr is a real pipe that stays open until terminate()
    is called, so the task keeps running.
    """

    def __init__(self, stderr=b"", returncode=0, blocking=False):
        self.returncode = None
        self._exit_code = returncode
        self.terminated = False
        self.killed = False
        if blocking:
            read_fd, self._write_fd = os.pipe()
            self.stderr = os.fdopen(read_fd, "rb", buffering=0)
        else:
            self._write_fd = None
            self.stderr = io.BytesIO(stderr)

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if self._write_fd is None:
            self.returncode = self._exit_code
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15
        if self._write_fd is not None:
            os.close(self._write_fd)
            self._write_fd = None

    def kill(self):
        self.killed = True
        self.terminate()


class FakeRunner:
    """Runner double for the API tests."""

    def __init__(self):
        self.calls = []
        self.busy = False
        self.stopped = 0

    @property
    def is_running(self):
        return self.busy

    @property
    def active_task(self):
        return None

    def run(self, payload, ffmpeg_path="ffmpeg", ffprobe_path="ffprobe"):
        if self.busy:
            raise TaskAlreadyRunningError("A transcode is already running; stop it before starting a new one.")
        args = build_ffmpeg_args(payload)
        self.calls.append((payload, ffmpeg_path, ffprobe_path))
        self.busy = True
        return SimpleNamespace(mode=resolve_mode(payload), command=format_command_preview(ffmpeg_path, args))

    def stop(self):
        if not self.busy:
            return False
        self.busy = False
        self.stopped += 1
        return True


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def app(fake_runner):
    from ffcraft.app import create_app

    return create_app({
        "TESTING": True,
        "SOCKETIO_ASYNC_MODE": "threading",
        "RUNNER": fake_runner,
    })


@pytest.fixture
def client(app):
    return app.test_client()
