"""Incremental updater for a MuseScore song collection."""

__version__ = "0.1.0"
