"""Exceptions raised by the clipboard history engine."""


class ClipkeepError(Exception):
    """Base exception for all clipkeep errors."""


class PersistenceError(ClipkeepError):
    """Raised when the durable store could not be read or written.

    The mutation that triggered the write has been rolled back.
    """


class NotFoundError(ClipkeepError, KeyError):
    """Raised when an operation references an entry id that does not exist."""

    def __init__(self, entry_id: int):
        super().__init__(entry_id)
        self.entry_id = entry_id

    def __str__(self) -> str:
        return f"No clipboard entry with id {self.entry_id}"


class InvalidArgumentError(ClipkeepError, ValueError):
    """Raised when input is rejected before any state change (empty tag, blank text)."""


class SerializationError(ClipkeepError, ValueError):
    """Raised when an import document is malformed. Nothing was imported."""


class ThumbnailUnavailable(ClipkeepError):
    """Raised by thumbnail generators; never escapes ThumbnailCache."""


class ClipboardError(ClipkeepError):
    """Raised when a value cannot be written to the OS clipboard."""
