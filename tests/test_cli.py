import json
import sys
from types import SimpleNamespace

from ffcraft import cli

FFMPEG = "/opt/ffmpeg/bin/ffmpeg"


def test_preview_from_flags(capsys) -> None:
    code = cli.cli_main([
        "preview", "--preset", "mp3", "--input", "/tmp/in.mp4", "--output", "/tmp/out.mp3",
        "--start", "5", "--ffmpeg", FFMPEG,
    ])

    assert code == 0
    assert capsys.readouterr().out.strip() == (
        f"{FFMPEG} -y -ss 5 -i /tmp/in.mp4 -vn -c:a libmp3lame -q:a 2 /tmp/out.mp3"
    )


def test_preview_from_job_file_with_overrides(tmp_path, capsys) -> None:
    job_file = tmp_path / "job.json"
    job_file.write_text(json.dumps({
        "mode": "visual",
        "preset": "gif",
        "inputPath": "/tmp/in.mov",
        "outputPath": "/tmp/out.gif",
        "fps": 15,
    }))

    code = cli.cli_main(["preview", str(job_file), "--output", "/tmp/other.gif", "--json"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == [
        "-y", "-i", "/tmp/in.mov", "-an",
        "-vf", "fps=15,scale=480:-1:flags=lanczos",
        "-loop", "0",
        "/tmp/other.gif",
    ]


def test_preview_raw_flag_switches_mode(capsys) -> None:
    code = cli.cli_main(["preview", "--raw=-i {input} -f null -", "--input", "/tmp/a.mov", "--json"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == ["-i", "/tmp/a.mov", "-f", "null", "-"]


def test_preview_reports_job_errors(capsys) -> None:
    code = cli.cli_main(["preview", "--preset", "vp9", "--input", "a", "--output", "b", "--ffmpeg", FFMPEG])

    assert code == 1
    assert "[✗] Unsupported preset: vp9" in capsys.readouterr().out


def test_suggest(capsys) -> None:
    assert cli.cli_main(["suggest", "/a/b/video.mov", "--preset", "mp3"]) == 0
    assert capsys.readouterr().out.strip() == "/a/b/video_converted.mp3"


def test_no_command_prints_help(capsys) -> None:
    assert cli.cli_main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_serve_uses_shared_server_entry(monkeypatch) -> None:
    calls = []
    monkeypatch.setitem(sys.modules, "ffcraft.server", SimpleNamespace(serve=lambda: calls.append("serve")))

    assert cli.cli_main(["serve"]) == 0
    assert calls == ["serve"]
