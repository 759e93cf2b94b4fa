"""Database models for Doc-O-Link."""

from docolink.models.base import Base, TimestampMixin
from docolink.models.record import Record, RecordMixin

__all__ = ["Base", "TimestampMixin", "Record", "RecordMixin"]
