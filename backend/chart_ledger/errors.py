"""Error taxonomy for the clinical record ledger.

Every rejected operation surfaces one of these with a stable ``kind`` and a
human-readable message. The HTTP layer maps ``status_code`` straight onto the
response.
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""

    kind = "ledger_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "detail": self.message}


class ValidationError(LedgerError):
    """Malformed or policy-violating input."""

    kind = "validation_error"
    status_code = 422


class NotFoundError(LedgerError):
    """Unknown patient, entry or version."""

    kind = "not_found"
    status_code = 404


class ConflictError(LedgerError):
    """Version regression or an amendment based on a stale version."""

    kind = "conflict"
    status_code = 409


class StorageError(LedgerError):
    """Underlying persistence unavailable or timed out."""

    kind = "storage_error"
    status_code = 503


class ImmutableRecordError(LedgerError):
    """Attempt to delete a ledger entry or rewrite an audit event."""

    kind = "immutable_record"
    status_code = 409
