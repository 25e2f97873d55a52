"""
Error taxonomy for taskgrid.

The HTTP layer maps these onto status codes; the core raises them and never
retries transient failures itself.
"""

from __future__ import annotations


class TaskGridError(Exception):
    """Base exception for taskgrid errors."""

    pass


class NotFoundError(TaskGridError):
    """A row, column, sheet or record required by a read could not be located."""

    pass


class TaskValidationError(TaskGridError):
    """Inbound data is unusable (empty name, empty task batch, bad date label)."""

    pass


class EditRestrictedError(TaskValidationError):
    """Write targets a day column other than the current one."""

    pass


class ConflictError(TaskGridError):
    """Backing store reported a constraint violation the upsert did not absorb."""

    pass


class StoreUnavailableError(TaskGridError):
    """Backing store unreachable or erroring. Callers own the retry policy."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CellFormatError(TaskGridError):
    """Cell formatting metadata cannot be decoded (e.g. unsorted runs)."""

    pass
