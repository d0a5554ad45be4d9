"""UIGen preview core: in-memory file system and live React preview pipeline."""

__version__ = "0.1.0"
