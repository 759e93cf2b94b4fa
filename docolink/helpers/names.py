"""Human-readable class names for error messages."""

import re

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def friendly_class_name(cls: type | object) -> str:
    """
    Split a CamelCase class name into words.

    Args:
        cls: A class or an instance of one

    Returns:
        e.g. "Document Collection" for DocumentCollection
    """
    if not isinstance(cls, type):
        cls = type(cls)
    return _WORD_BOUNDARY.sub(" ", cls.__name__).replace("_", " ").strip()
