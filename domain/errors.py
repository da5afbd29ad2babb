# -*- coding: utf-8 -*-

from typing import Dict


class TrackerError(Exception):
    """Base for every failure the services report to a caller."""

    kind = "internal"

    def __init__(self, message: str = "Internal error"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class InvalidInput(TrackerError, ValueError):
    kind = "invalid_input"


class NotFound(TrackerError, LookupError):
    kind = "not_found"


class Conflict(TrackerError):
    kind = "conflict"


class Forbidden(TrackerError):
    kind = "forbidden"


class StorageUnavailable(TrackerError):
    """
    Storage collaborator failed. The message stays opaque; the original
    exception is chained as __cause__ and logged where it was caught.
    """

    kind = "storage_unavailable"

    def __init__(self, message: str = "Storage unavailable"):
        super().__init__(message)
