"""
Custom Exceptions Module.

This module defines the exceptions raised inside invoice composer.
Each failure is scoped to the single operation that raised it; none of
them is fatal to the process.

Exception Hierarchy:
    InvoiceComposerError (base)
    ├── ValidationError
    ├── ImageError
    │   ├── LoadError
    │   └── RenderError
    ├── ExportError
    │   ├── MissingSourceError
    │   └── EncodingError
    └── StorageError

Propagation:
    - StorageError never escapes the persistence stores (converted to bool).
    - ImageError is caught by the logo uploader, which falls back to a raw read.
    - ExportError is caught by ExportHandler.run() and turned into a
      failure notification.
"""


class InvoiceComposerError(Exception):
    """
    Base exception for all invoice composer errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(InvoiceComposerError):
    """
    Raised when caller-supplied data is rejected.

    Example:
        >>> raise ValidationError("file", "logo.gif", "Unsupported type image/gif")
    """

    def __init__(self, field: str, value, reason: str = None):
        message = f"Validation failed for field '{field}'"
        if reason:
            message = f"{message}: {reason}"
        details = {"field": field, "value": value, "reason": reason}
        super().__init__(message, details)
        self.field = field
        self.reason = reason


# =============================================================================
# IMAGE ERRORS
# =============================================================================

class ImageError(InvoiceComposerError):
    """Base exception for image optimization errors."""
    pass


class LoadError(ImageError):
    """Raised when an image source cannot be fetched or decoded."""

    def __init__(self, source: str, reason: str = None):
        message = f"Failed to load image: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


class RenderError(ImageError):
    """Raised when an image or render tree cannot be drawn or encoded."""

    def __init__(self, target: str, reason: str = None):
        message = f"Failed to render image: {target}"
        details = {"target": target, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# EXPORT ERRORS
# =============================================================================

class ExportError(InvoiceComposerError):
    """Base exception for export pipeline errors."""
    pass


class MissingSourceError(ExportError):
    """Raised when an export is requested without a rendered source node."""

    def __init__(self, export_kind: str):
        message = f"No rendered invoice available for {export_kind} export"
        details = {"export_kind": export_kind}
        super().__init__(message, details)


class EncodingError(ExportError):
    """Raised when an artifact cannot be serialized."""

    def __init__(self, export_kind: str, reason: str = None):
        message = f"Failed to encode {export_kind} artifact"
        details = {"export_kind": export_kind, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# STORAGE ERRORS
# =============================================================================

class StorageError(InvoiceComposerError):
    """Raised by key-value backends on quota, engine or serialization failure."""

    def __init__(self, operation: str, reason: str = None):
        message = f"Storage operation failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'InvoiceComposerError',
    'ValidationError',
    'ImageError',
    'LoadError',
    'RenderError',
    'ExportError',
    'MissingSourceError',
    'EncodingError',
    'StorageError',
]
