"""Inclusive Learning Companion: accessibility-first reading, notes, captions and image description."""

__version__ = "0.1.0"
