"""File-to-document converters."""

from needle.plugins.converters.text import TextConverter

__all__ = ["TextConverter"]
