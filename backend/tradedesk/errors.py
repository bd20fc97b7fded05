"""
Error taxonomy for transaction processing and numbering.

Every error carries a machine-readable ``kind`` and the HTTP status the API
layer answers with. Services raise these; routes translate them into
``{"error": {"kind": ..., "message": ...}}`` bodies.

    TradeDeskError
    +-- ValidationError        (400) malformed input, rejected before any mutation
    +-- NotFoundError          (404) transaction / party / stock / log absent
    +-- ConflictError          (409) duplicate document number
    +-- StateError             (409) operation invalid for current status
    +-- AllocationExhausted    (503) sequence retries exhausted
    +-- ImmutableRecordError   (409) edit / delete of an append-only ledger row
"""

from __future__ import annotations


class TradeDeskError(Exception):
    """Base class for all domain errors."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str, *, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"kind": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(TradeDeskError):
    """400-level input problem."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(TradeDeskError):
    kind = "not_found"
    status_code = 404


class ConflictError(TradeDeskError):
    """409-level business rule conflict (e.g., duplicate transaction number)."""

    kind = "conflict"
    status_code = 409


class StateError(TradeDeskError):
    """Raised when an operation is invalid for the current document state."""

    kind = "invalid_state"
    status_code = 409


class AllocationExhausted(TradeDeskError):
    """Raised when a sequence could not be advanced within the retry limit."""

    kind = "allocation_exhausted"
    status_code = 503


class ImmutableRecordError(TradeDeskError):
    """Raised when code tries to edit or delete an append-only ledger row."""

    kind = "immutable_record"
    status_code = 409
