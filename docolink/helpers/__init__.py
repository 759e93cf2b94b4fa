"""Small helpers shared across Doc-O-Link."""

from docolink.helpers.json import (
    canonicalize,
    canonically_same,
    canonically_same_except,
    decode_or_throw,
    encode,
    mugglify,
    plain,
)
from docolink.helpers.names import friendly_class_name
from docolink.helpers.paths import data_forget, data_get, data_set, empty_container_for

__all__ = [
    "canonicalize",
    "canonically_same",
    "canonically_same_except",
    "decode_or_throw",
    "encode",
    "mugglify",
    "plain",
    "friendly_class_name",
    "data_forget",
    "data_get",
    "data_set",
    "empty_container_for",
]
