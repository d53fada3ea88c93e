"""Streaming chat client with a capped, persisted transcript."""

__version__ = "0.1.0"
