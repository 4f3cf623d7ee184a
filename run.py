#!/usr/bin/env python3
"""Entry point for the ffcraft web server."""

import eventlet

# Patch stdlib for eventlet/WebSocket support
eventlet.monkey_patch()

from ffcraft.server import serve  # noqa

if __name__ == "__main__":
    serve()
