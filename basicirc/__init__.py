"""Basic IRC client: registration handshake, channel joins, PING/PONG."""

__version__ = "0.1.0"
