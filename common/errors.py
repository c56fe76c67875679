#!/usr/bin/env python3
"""
Error types shared by the resolver, write handles and batch operations.

Every per-item failure raised while processing a batch derives from
ExifDateError. The batch orchestrator catches these at the item boundary and
records their message against the item's display name, so messages should be
short and readable by an end user.
"""


class ExifDateError(Exception):
    """Base class for per-item processing failures."""

    default_message = "Unknown error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NoLegalTarget(ExifDateError):
    """The resolver exhausted every strategy for placing a derived file."""

    default_message = "Cannot create destination next to source"


class CannotOpen(ExifDateError):
    """The write sink for a resolved destination could not be opened."""

    default_message = "Cannot open destination for writing"


class DecodeFailure(ExifDateError):
    """Source bytes are not a valid image of the expected format."""

    default_message = "Failed to decode image"


class WrongType(ExifDateError):
    """The source's declared type does not match the operation's input."""

    default_message = "Unsupported image type"


class WriteFailure(ExifDateError):
    """Encoding, metadata writing or commit of the output failed."""

    default_message = "Failed to write output"


class IntegrityCheckFailed(ExifDateError):
    """The destination is missing or empty after the write completed."""

    default_message = "Destination not found after write"


class SourceDeletionFailed(ExifDateError):
    """The destination was confirmed but the original could not be removed.

    The output exists, so the batch records the item as a success carrying
    this message as a warning.
    """

    default_message = "Created output, but failed to delete source"


# =============================================================================
# Storage-level errors (raised by handles and the catalog)
# =============================================================================


class CatalogError(Exception):
    """A catalog query or mutation failed."""


class NameConflict(CatalogError):
    """A catalog insert collided with an existing record of the same name."""


class AccessDenied(PermissionError):
    """The handle was not granted the requested access mode."""
