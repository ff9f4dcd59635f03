"""ssort - Reorder a line stream by filter priority."""

__version__ = "0.0.2"
