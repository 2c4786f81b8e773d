"""Scriptreel - turns a sectioned script into a narrated stock-footage video."""

__version__ = "1.0.0"
