"""Project Browser - find and catalog local code projects."""

__version__ = "0.1.0"
