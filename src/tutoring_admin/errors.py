from __future__ import annotations

"""Error hierarchy shared by the table engine and the batch services.

Nothing in the core recovers from these. They propagate to the dispatcher,
which turns them into an error envelope, or to the CLI, which turns them
into an exit code.
"""

__all__ = [
    "TutoringError",
    "SchemaNotFound",
    "SchemaDrift",
    "TypeMismatch",
    "ParseError",
    "NotFound",
    "DuplicateKey",
    "FormWriteForbidden",
    "UnknownDayStatus",
    "UnrecognizedDayLetter",
    "ConsistencyViolation",
    "UnknownOperation",
    "StorageError",
    "InvalidModSlot",
]


class TutoringError(Exception):
    """Base class for every error raised by the backend."""

    @property
    def code(self) -> str:
        return type(self).__name__


class SchemaNotFound(TutoringError):
    """Unknown table name."""


class SchemaDrift(TutoringError):
    """Stored column count differs from the schema field count."""


class TypeMismatch(TutoringError):
    """A field codec rejected a value."""


class ParseError(TutoringError):
    """Malformed JSON payload in a JSON field."""


class NotFound(TutoringError):
    """Primary key absent on update/delete/retrieve."""


class DuplicateKey(TutoringError):
    """Primary key appears in more than one row."""


class FormWriteForbidden(TutoringError):
    """Mutating verb attempted on a form table."""


class UnknownDayStatus(TutoringError):
    pass


class UnrecognizedDayLetter(TutoringError):
    pass


class ConsistencyViolation(TutoringError):
    """Stored data contradicts itself (e.g. a tutor matched twice on one mod)."""


class UnknownOperation(TutoringError):
    """RPC path did not match any table verb or command."""


class StorageError(TutoringError):
    """The row store could not satisfy a request."""


class InvalidModSlot(TutoringError, ValueError):
    pass
