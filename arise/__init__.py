"""Arise: authoritative economy engine for an idle RPG."""

__version__ = "1.0.0"
