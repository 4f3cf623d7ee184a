from ffcraft.blueprints import api


def test_presets_endpoint(client) -> None:
    response = client.get("/api/presets")

    assert response.status_code == 200
    data = response.get_json()
    assert [preset["name"] for preset in data["presets"]] == ["h264", "h265", "mp3", "gif"]
    assert data["presets"][3]["extension"] == ".gif"
    assert data["presets"][1]["defaults"]["crf"] == 28
    assert data["default"] == "h264"


def test_suggest_output(client) -> None:
    response = client.post("/api/suggest-output", json={"inputPath": "/a/b/video.mov", "preset": "gif"})
    assert response.get_json() == {"outputPath": "/a/b/video_converted.gif"}

    response = client.post("/api/suggest-output", json={})
    assert response.get_json() == {"outputPath": ""}


def test_preview_fills_placeholders(client) -> None:
    response = client.post("/api/preview", json={"preset": "h264"})

    assert response.status_code == 200
    data = response.get_json()
    assert data["args"] == [
        "-y", "-i", "{input}",
        "-c:v", "libx264", "-preset", "medium", "-crf", "23",
        "-c:a", "aac", "-b:a", "192k",
        "{output}",
    ]
    assert data["command"] == 'ffmpeg -y -i "{input}" -c:v libx264 -preset medium -crf 23 -c:a aac -b:a 192k "{output}"'


def test_preview_uses_request_ffmpeg_path(client) -> None:
    response = client.post("/api/preview", json={
        "mode": "raw",
        "rawArgs": "-i {input} -f null -",
        "inputPath": "/tmp/in file.mov",
        "ffmpegPath": "/opt/ffmpeg/bin/ffmpeg",
    })

    assert response.get_json()["command"] == '/opt/ffmpeg/bin/ffmpeg -i "/tmp/in file.mov" -f null -'


def test_preview_rejects_bad_jobs(client) -> None:
    response = client.post("/api/preview", json={"preset": "vp9"})
    assert response.status_code == 400
    assert response.get_json() == {"error": "Unsupported preset: vp9"}

    response = client.post("/api/preview", json={"mode": "raw", "rawArgs": '-i "{input}'})
    assert response.status_code == 400
    assert "unclosed quote" in response.get_json()["error"]


def test_probe_requires_input(client) -> None:
    response = client.post("/api/probe", json={"inputPath": "  "})
    assert response.status_code == 400


def test_probe_returns_media_info(client, monkeypatch) -> None:
    calls = []

    def fake_probe(ffprobe_path, input_path):
        calls.append((ffprobe_path, input_path))
        return {"file": input_path, "durationSec": 12.0, "streams": []}

    monkeypatch.setattr(api, "probe_media", fake_probe)

    response = client.post("/api/probe", json={"inputPath": "/tmp/in.mov", "ffprobePath": "/custom/ffprobe"})
    assert response.status_code == 200
    assert response.get_json()["durationSec"] == 12.0
    assert calls == [("/custom/ffprobe", "/tmp/in.mov")]


def test_probe_failure_is_reported(client, monkeypatch) -> None:
    def failing_probe(ffprobe_path, input_path):
        raise api.ProbeError("ffprobe returned invalid JSON output")

    monkeypatch.setattr(api, "probe_media", failing_probe)

    response = client.post("/api/probe", json={"inputPath": "/tmp/in.mov"})
    assert response.status_code == 502
    assert response.get_json() == {"error": "ffprobe returned invalid JSON output"}


def test_run_starts_job_and_rejects_concurrent_runs(client, fake_runner) -> None:
    job = {
        "preset": "mp3",
        "inputPath": "/tmp/in.mp4",
        "outputPath": "/tmp/out.mp3",
        "ffmpegPath": "/opt/ffmpeg/bin/ffmpeg",
        "ffprobePath": "/opt/ffmpeg/bin/ffprobe",
    }

    response = client.post("/api/run", json=job)
    assert response.status_code == 200
    assert response.get_json() == {
        "started": True,
        "mode": "preset",
        "command": "/opt/ffmpeg/bin/ffmpeg -y -i /tmp/in.mp4 -vn -c:a libmp3lame -q:a 2 /tmp/out.mp3",
    }
    assert fake_runner.calls[0][1:] == ("/opt/ffmpeg/bin/ffmpeg", "/opt/ffmpeg/bin/ffprobe")

    assert client.get("/api/status").get_json() == {"running": True, "command": None}

    response = client.post("/api/run", json=job)
    assert response.status_code == 409

    assert client.post("/api/stop").get_json() == {"stopped": True}
    assert client.post("/api/stop").get_json() == {"stopped": False}
    assert client.get("/api/status").get_json() == {"running": False, "command": None}


def test_run_rejects_invalid_job(client, fake_runner) -> None:
    response = client.post("/api/run", json={"mode": "raw", "rawArgs": "-i {input} -f null -"})

    assert response.status_code == 400
    assert "inputPath" in response.get_json()["error"]
    assert fake_runner.calls == []


def test_run_refuses_programs_other_than_ffmpeg(client, fake_runner) -> None:
    response = client.post("/api/run", json={
        "mode": "raw",
        "rawArgs": "-c 'touch /tmp/marker'",
        "ffmpegPath": "/bin/sh",
    })

    assert response.status_code == 400
    assert response.get_json() == {"error": "ffmpegPath must point to a ffmpeg executable"}
    assert fake_runner.calls == []


def test_run_accepts_windows_style_ffmpeg_path(client, fake_runner) -> None:
    response = client.post("/api/run", json={
        "preset": "mp3",
        "inputPath": "/tmp/in.mp4",
        "outputPath": "/tmp/out.mp3",
        "ffmpegPath": "C:\\ffmpeg\\bin\\ffmpeg.exe",
    })

    assert response.status_code == 200
    assert fake_runner.calls[0][1] == "C:\\ffmpeg\\bin\\ffmpeg.exe"


def test_probe_refuses_programs_other_than_ffprobe(client, monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(api, "probe_media", lambda ffprobe_path, input_path: calls.append(ffprobe_path))

    response = client.post("/api/probe", json={"inputPath": "/tmp/in.mov", "ffprobePath": "/usr/bin/python3"})

    assert response.status_code == 400
    assert calls == []


def test_preview_ignores_numbers_beyond_float_range(client) -> None:
    response = client.post(
        "/api/preview",
        data='{"mode": "visual", "inputPath": "a.mov", "outputPath": "b.mp4", "crf": 1' + "0" * 400 + "}",
        content_type="application/json",
    )

    assert response.status_code == 200
    args = response.get_json()["args"]
    assert args[args.index("-crf") + 1] == "23"
