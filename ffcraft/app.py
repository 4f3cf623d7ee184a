"""Main ffcraft application."""

import os
import logging
from flask import Flask
from flask_socketio import SocketIO

from ffcraft.config import load_config
from ffcraft.blueprints.api import api_bp
from ffcraft.transcoder import TranscodeRunner

# Initialize SocketIO globally
socketio = SocketIO()


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Load configuration from config file
    config = load_config()

    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY", config.secret_key or "ffcraft_dev_secret_key"),
        SOCKETIO_ASYNC_MODE="eventlet",
    )

    # Load test configuration if provided
    if test_config is not None:
        app.config.from_mapping(test_config)

    app.register_blueprint(api_bp, url_prefix="/api")

    # Initialize SocketIO with the app
    socketio.init_app(app, cors_allowed_origins="*", async_mode=app.config["SOCKETIO_ASYNC_MODE"])

    # Runner events go straight to every connected client
    app.extensions["ffcraft.runner"] = app.config.get("RUNNER") or TranscodeRunner(
        emit=socketio.emit,
        stop_timeout=config.stop_timeout,
    )

    return app


def main():
    """Run the application."""
    # Logging is configured in run.py, but update here in case app.py is run directly
    config = load_config()
    log_level = os.environ.get("LOG_LEVEL", config.log_level).upper()
    logging.getLogger().setLevel(getattr(logging, log_level))

    # Create Flask app
    app = create_app()

    # Run with SocketIO instead of Flask's built-in server
    socketio.run(app, host=config.host, port=config.port, debug=os.environ.get("DEBUG", "False").lower() == "true")


if __name__ == "__main__":
    main()
