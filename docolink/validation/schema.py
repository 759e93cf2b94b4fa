"""JSON Schema validation for documents and collections.

Schemas are referenced three ways:

- a dict, used as is
- inline JSON text (anything starting with ``{``)
- a path, relative to the configured schema directory. A URL under the
  configured schema base URL maps onto the same directory.

Uses JSON Schema Draft 7.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator, SchemaError

from docolink.config import get_settings
from docolink.exceptions import ConfigurationError, JsonDecodeError, ValidationError
from docolink.helpers.json import decode_or_throw

logger = logging.getLogger(__name__)


class SchemaValidator:
    """Resolves schema references and collects per-path validation errors."""

    def __init__(self, schema_dir: str | Path | None = None, base_url: str | None = None):
        """
        Initialize a validator.

        Args:
            schema_dir: Directory for relative schema paths (default: from settings)
            base_url: URL prefix mapped onto schema_dir (default: from settings)
        """
        settings = get_settings()
        self.schema_dir = Path(schema_dir) if schema_dir is not None else settings.get_schema_dir()
        self.base_url = base_url if base_url is not None else settings.schema_base_url
        self._cache: dict[str, dict[str, Any]] = {}

    def _path_for(self, reference: str) -> Path:
        if self.base_url and reference.startswith(self.base_url):
            reference = reference[len(self.base_url):].lstrip("/")
        path = Path(reference)
        if not path.is_absolute():
            path = self.schema_dir / path
        return path

    def resolve(self, schema: Any) -> dict[str, Any]:
        """
        Turn a schema reference into a schema dict.

        Raises:
            ConfigurationError: If the schema can't be read or isn't a valid schema
        """
        if isinstance(schema, Mapping):
            return dict(schema)
        if not isinstance(schema, str):
            raise ConfigurationError(f"Unusable schema reference {schema!r}")

        reference = schema.strip()
        cached = self._cache.get(reference)
        if cached is not None:
            return cached

        if reference.startswith("{"):
            text = reference
        else:
            path = self._path_for(reference)
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(f"Can't read schema {reference} from {path}") from e
            logger.debug("Loaded schema %s from %s", reference, path)

        try:
            resolved = decode_or_throw(text)
            Draft7Validator.check_schema(resolved)
        except JsonDecodeError as e:
            raise ConfigurationError(f"Schema {reference[:80]} isn't valid JSON") from e
        except SchemaError as e:
            raise ConfigurationError(f"Schema {reference[:80]} is invalid: {e.message}") from e

        self._cache[reference] = resolved
        return resolved

    def errors(self, data: Any, schema: Any) -> dict[str, list[str]]:
        """
        Validate data and collect error messages.

        Args:
            data: Plain JSON data
            schema: Schema reference (see module docs)

        Returns:
            Dotted data path to list of messages, empty if valid. Errors on
            the root itself use the key "".
        """
        validator = Draft7Validator(self.resolve(schema))
        collected: dict[str, list[str]] = {}
        for error in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path]):
            path = ".".join(str(p) for p in error.absolute_path)
            collected.setdefault(path, []).append(error.message)
        return collected

    def is_valid(self, data: Any, schema: Any) -> bool:
        return not self.errors(data, schema)

    def validate_or_throw(self, data: Any, schema: Any, message: str | None = None) -> bool:
        """
        Validate data, raising if invalid.

        Returns:
            True

        Raises:
            ValidationError: With per-path messages
        """
        errors = self.errors(data, schema)
        if errors:
            logger.debug("Validation failed: %s", errors)
            raise ValidationError(message or "Data contains invalid data!", errors)
        return True

    def validate_collection_or_throw(
        self, items: list[Any], item_schema: Any, message: str | None = None
    ) -> bool:
        """Validate a list where every element must match the item schema."""
        schema = {"type": "array", "items": self.resolve(item_schema)}
        return self.validate_or_throw(items, schema, message)

    def clear(self) -> None:
        self._cache.clear()


# Global validator instance
_validator: SchemaValidator | None = None


def get_validator() -> SchemaValidator:
    """Get or create the global schema validator."""
    global _validator
    if _validator is None:
        _validator = SchemaValidator()
    return _validator


def reset_validator() -> None:
    """Reset the global validator (useful for testing)."""
    global _validator
    _validator = None
