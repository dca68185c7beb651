"""Talkback: spoken English practice over a realtime voice API."""

__version__ = "0.1.0"
