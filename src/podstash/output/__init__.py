"""HTML output for Podstash archives."""

from podstash.output.html import HTMLRenderer

__all__ = ["HTMLRenderer"]
