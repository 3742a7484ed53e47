"""Typed failures surfaced by the record store and the issue service."""


class LedgerError(Exception):
    """Base class for every failure raised by issue_ledger."""

    pass


class BackendUnavailable(LedgerError):
    """The key/value backend is down, unreachable, or not writable."""

    pass


class WriteRejected(BackendUnavailable):
    """A single set_data call was refused by the backend."""

    pass


class IndexWriteError(WriteRejected):
    """The issue record was written but the index append failed.

    The record is stored yet invisible to listing until the index is
    repaired with ``RecordStore.ensure_indexed``.
    """

    def __init__(self, issue_id: str, message: str = ""):
        self.issue_id = issue_id
        super().__init__(message or f"Index append failed for issue {issue_id}")


class DecodeError(LedgerError):
    """A ciphertext or stored blob could not be decoded."""

    pass


class RecordNotFound(LedgerError):
    """No issue record is stored under the requested id."""

    def __init__(self, issue_id: str):
        self.issue_id = issue_id
        super().__init__(f"Issue {issue_id} not found")


class ValidationError(LedgerError):
    """A required field is empty or a mutation broke a record invariant."""

    pass
