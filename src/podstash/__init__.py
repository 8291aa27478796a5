"""Podstash - archive podcast feeds and republish them from local storage."""

__version__ = "0.1.0"
