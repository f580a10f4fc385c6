from __future__ import annotations


class ValidationError(ValueError):
    """400-level input problem (blank mandatory field, unknown patch field, bad week)."""


class DuplicateKeyConflict(ValueError):
    """
    An edit would give a second record the same (po_number, sku_code, uid).

    Services catch this and report a duplicate-ignored outcome that points at
    the record already holding the key; it is never surfaced as an error.
    """

    def __init__(self, existing_id: str, message: str | None = None):
        super().__init__(message or f"Natural key already belongs to record {existing_id}")
        self.existing_id = existing_id


class StorageError(RuntimeError):
    """500-level persistence failure; the enclosing transaction was rolled back."""
