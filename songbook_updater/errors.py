"""Exception types raised by the songbook updater."""

from dataclasses import dataclass


class SongbookError(RuntimeError):
    """Base class of every error raised by this package."""


class ConfigError(SongbookError):
    """Raised when the configuration is incomplete or unreadable."""


class UnavailableCommandsError(SongbookError):
    """Raised at startup when required external executables are missing."""

    def __init__(self, unavailable: list[str]) -> None:
        self.unavailable = list(unavailable)
        names = "”, “".join(self.unavailable)
        super().__init__(f"Some dependencies are not installed: “{names}”")


class MetadataError(SongbookError):
    """Raised when a metadata sidecar is missing, malformed or has unknown keys."""


class SourceFileMissingError(SongbookError):
    """Raised when a song folder lacks the notation source of a chain."""


class DuplicateSongIdError(SongbookError):
    """Raised when two song folders share the same name."""


class UnknownSongError(SongbookError, KeyError):
    """Raised when a song ID is not part of the collection."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ConversionError(SongbookError):
    """Raised when an external converter fails or produces no output."""

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = "") -> None:
        self.command = command or []
        self.stderr = stderr
        super().__init__(message)


class LayoutError(SongbookError):
    """Raised when a song cannot take part in the piano score pagination."""


@dataclass(frozen=True)
class SongFailure:
    """A per-song error collected during a run and reported at the end."""

    song_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.song_id}: {self.message}"
