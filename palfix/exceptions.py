"""Custom Exceptions for the palfix application."""

class PalFixError(Exception):
    """Base class for exceptions in this package."""
    exit_code = 1

class ConfigurationError(PalFixError):
    """Exception raised for errors in configuration loading."""
    exit_code = 3

class UsageError(PalFixError):
    """Exception raised when the command line has the wrong shape."""
    exit_code = 2

class MalformedTimecode(PalFixError):
    """Exception raised for an embedded timestamp that cannot be parsed."""
    exit_code = 4

class NegativeDuration(PalFixError, ValueError):
    """Exception raised when formatting a negative millisecond count."""
    exit_code = 4

class MissingTrackAttribute(PalFixError):
    """Exception raised when a required track property (e.g. sample rate) is unknown."""
    exit_code = 5

class OverwriteDeclined(PalFixError):
    """Raised when the user does not confirm overwriting an existing output. Not a failure."""
    exit_code = 0

class ExternalToolFailure(PalFixError):
    """Exception raised when mkvmerge, mkvextract, ffprobe or ffmpeg reports failure."""
    exit_code = 6

    def __init__(self, tool: str, message: str, returncode=None, stderr: str = ""):
        super().__init__(f"{tool} failed: {message}")
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr

class WorkspaceError(PalFixError):
    """Exception raised when the temporary workspace cannot be created or removed."""
    exit_code = 7

class FileSystemError(PalFixError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass
