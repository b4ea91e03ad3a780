"""ParodyForge: assemble one video from timestamped YouTube clips."""

__version__ = "0.1.0"
