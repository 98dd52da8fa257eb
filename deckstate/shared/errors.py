"""
Exception taxonomy for the editor engine.

Decryption failures have no exception type; they degrade to raw text.
Failed preconditions on edits are logged no-ops.
"""


class EditorError(Exception):
    """Base class for engine errors."""


class PersistenceFailure(EditorError):
    """A remote or local read/write was rejected or timed out."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        message = f"{operation} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class IdentityRequired(EditorError):
    """The operation needs a signed-in caller."""


class RestoreIntegrityFailure(EditorError):
    """A version snapshot was found but holds no slides."""
