from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base class for domain errors raised by the ledger.

    ``kind`` is a stable machine-readable code, ``summary`` a short human
    message. Storage details never appear in either.
    """

    kind = "ledger"
    retryable = False

    def __init__(self, summary: str, **details: Any) -> None:
        super().__init__(summary)
        self.summary = summary
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "summary": self.summary}
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class ValidationError(LedgerError):
    kind = "validation"


class SlotClosedError(LedgerError):
    """Result already published for the tier. Terminal."""

    kind = "slot_closed"


class SlotNotCurrentError(LedgerError):
    """Field agent tried to play outside the current slot. Terminal."""

    kind = "slot_not_current"


class ContentMissingError(LedgerError):
    kind = "content_missing"


class ContentLockedError(LedgerError):
    kind = "content_locked"


class AlreadyPublishedError(LedgerError):
    kind = "already_published"


class NotFoundError(LedgerError):
    kind = "not_found"


class ConflictError(LedgerError):
    """Lost a uniqueness race. Safe to retry once."""

    kind = "conflict"
    retryable = True


class StoreBusyError(LedgerError):
    kind = "busy"
    retryable = True


class StoreError(LedgerError):
    kind = "store"
