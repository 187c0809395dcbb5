"""Page snapshot service: background page rendering with WebSocket notifications."""

__version__ = "1.0.0"
