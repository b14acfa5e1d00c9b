"""Watermark Nuker: browser-facing watermark removal backed by a Gemini image model."""

__version__ = "0.1.0"
