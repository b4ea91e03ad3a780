"""Exception types raised across the pipeline."""


class ParodyForgeError(Exception):
    """Base class for all pipeline errors."""

    pass


class MissingDependencyError(ParodyForgeError):
    """A required external tool (ffmpeg / yt-dlp) is not reachable."""

    pass


class MalformedInputError(ParodyForgeError):
    """The input manifest is unreadable or structurally invalid."""

    pass


class DirectoryError(ParodyForgeError):
    """The cache or scratch directory could not be prepared."""

    pass


class UnresolvableUrlError(ParodyForgeError):
    pass


class InvalidTimecodeError(ParodyForgeError, ValueError):
    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(
            f"Invalid time format: {raw!r}. Expected HH:MM:SS, MM:SS, or SS."
        )


class NonPositiveDurationError(ParodyForgeError, ValueError):
    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end
        super().__init__(f"End time ({end}) must be after start time ({start}).")


class ToolError(ParodyForgeError):
    """An external tool call failed. ``stderr`` holds its diagnostic output."""

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)


class DownloadError(ToolError):
    pass


class CutError(ToolError):
    pass


class ConcatenationError(ToolError):
    pass
