"""Anki request adapter: tool catalog, dispatcher and resources over AnkiConnect."""

__version__ = "1.0.0"
