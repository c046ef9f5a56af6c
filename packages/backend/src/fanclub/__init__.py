"""Fan Club Z — realtime backend for the social prediction-market app.

Pushes live bet updates, club chat, activity feeds and per-user
notifications to connected clients over two WebSocket channels.
"""

__version__ = "0.1.0"
