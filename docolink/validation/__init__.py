"""Schema validation."""

from docolink.validation.schema import SchemaValidator, get_validator, reset_validator

__all__ = ["SchemaValidator", "get_validator", "reset_validator"]
