"""In-memory key-value store with sorted sets, a binary wire protocol and per-client framing."""

__version__ = "0.1.0"