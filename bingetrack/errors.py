from typing import Optional


class BingetrackError(Exception):
    """Base for all Bingetrack exceptions."""


class NotFound(BingetrackError):
    """Catalog entity (show, season or episode) does not exist."""


class CatalogUnavailable(BingetrackError):
    """Catalog could not be reached, or every show failed to resolve."""


class InvalidWatchEntry(BingetrackError):
    """A watched entry carries an impossible season or episode number."""


class InvalidTimestamp(InvalidWatchEntry):
    """A watched entry carries a timestamp that cannot be parsed."""


class StoreWriteFailure(BingetrackError):
    """Appending to or removing from the watch log failed."""


class ConfirmationRequired(BingetrackError):
    """Unmarking an episode was requested without confirmation."""


class ShowResolutionFailure(BingetrackError):
    """A single show could not be resolved; other shows are unaffected."""

    def __init__(self, show_id: int, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f"show {show_id}: {reason}")
        self.show_id = show_id
        self.reason = reason
        self.cause = cause

    def is_catalog_failure(self) -> bool:
        return isinstance(self.cause, (NotFound, CatalogUnavailable))

    def to_dict(self) -> dict:
        return {"show_id": self.show_id, "reason": self.reason}
