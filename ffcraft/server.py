"""Web server entry point shared by run.py and `ffcraft serve`."""

import os
import logging
import eventlet

# Patch stdlib for eventlet/WebSocket support before the app and runner are imported
eventlet.monkey_patch()

from ffcraft.app import main  # noqa: E402
from ffcraft.config import load_config  # noqa: E402


def serve():
    """Configure logging from the config file and run the web server."""
    config = load_config()

    # Configure logging with level from config, overridden by environment variable if set
    log_level = os.environ.get("LOG_LEVEL", config.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="[%(levelname)s] %(asctime)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.info(f"🚀 ffcraft starting with log level: {log_level}")
    logging.info(f"🎬 ffmpeg: {config.ffmpeg_path}, ffprobe: {config.ffprobe_path}")

    # Start the app
    main()


if __name__ == "__main__":
    serve()
