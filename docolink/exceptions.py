"""Custom exceptions for document mapping operations."""

from typing import Any


class DocolinkError(Exception):
    """Base exception for document mapping errors."""

    pass


class ConfigurationError(DocolinkError):
    """Raised when a document type or collection is declared incorrectly."""

    pass


class NotLinkedError(DocolinkError):
    """Raised when an operation needs a link and the object has none."""

    def __init__(self, message: str = "Document isn't linked"):
        super().__init__(message)


class TypeMismatchError(DocolinkError, TypeError):
    """Raised when a value can't be assigned or cast to the declared type."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class RecursivePropertyError(TypeMismatchError):
    """Raised when a document is assigned as an attribute of itself."""

    def __init__(self, field: str | None = None):
        super().__init__("Cannot set a recursive property.", field)


class UniqueError(DocolinkError):
    """Raised when a collection insert would duplicate a primary key."""

    def __init__(self, field: str, value: Any):
        message = f"Collection can't contain duplicate {field} {value}"
        super().__init__(message)
        self.field = field
        self.value = value


class ValidationError(DocolinkError):
    """Raised when a document fails schema validation.

    ``errors`` maps a dotted data path to the list of messages for that path.
    """

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.errors = errors or {}


class NotFoundError(DocolinkError):
    """Raised when a document is not found in a collection."""

    def __init__(self, resource_type: str, resource_id: Any):
        message = f"{resource_type} with key '{resource_id}' not found"
        super().__init__(message)
        self.resource_type = resource_type
        self.resource_id = resource_id


class DatabaseError(DocolinkError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class JsonDecodeError(DocolinkError, ValueError):
    """Raised when JSON text can't be decoded."""

    pass
