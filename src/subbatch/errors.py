"""Exception hierarchy shared by the scanner and the commands.

Everything raised on purpose derives from ``SubBatchError`` so the CLI can report it
as a one-line error instead of a traceback.
"""

from __future__ import annotations


class SubBatchError(RuntimeError):
    """Base class for expected, user-facing failures."""


class ScanError(SubBatchError):
    """Raised when a directory cannot be scanned."""


class AreaMismatchError(ScanError):
    """Raised when a configured area regex does not match a file name."""

    def __init__(self, pattern: str, file_name: str) -> None:
        super().__init__(f"failed to match regex {pattern} on text: {file_name}")
        self.pattern = pattern
        self.file_name = file_name


class NoMatchesError(SubBatchError):
    """Raised by commands when a scan produced nothing to act on."""


class UnsupportedFormatError(SubBatchError):
    """Raised when an action is given subtitles it cannot process."""


class ToolNotFoundError(SubBatchError):
    """Raised when a required external executable is not on PATH."""


class AlignmentError(SubBatchError):
    """Raised after a batch of alass runs when at least one of them failed."""

    def __init__(self, message: str, failures: list[str] | None = None) -> None:
        super().__init__(message)
        self.failures = list(failures or [])


class DownloadError(SubBatchError):
    """Raised when fetching a subtitle page or file fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MpvError(SubBatchError):
    """Raised when mpv cannot be reached or rejects a command."""
