"""SQLAlchemy records as persistence roots for documents.

A record's JSON columns hold document data. Documents link to a column
(``Person(record, "data", "person")``) or are declared on the record through
``LINKED_ATTRIBUTES``, exactly like on a document::

    class Deal(RecordMixin, Base):
        __tablename__ = "deals"
        LINKED_ATTRIBUTES = {"buyer": (Person, "data", "buyer")}
        id: Mapped[int] = mapped_column(primary_key=True)
        data: Mapped[dict] = mapped_column(JSON, default=dict)

    deal.buyer.name = "Ada"
    deal.buyer.save()  # writes into deal.data, then flushes deal
"""

import logging
from typing import Any, Optional

from sqlalchemy import JSON, String, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Mapped, mapped_column, object_session
from sqlalchemy.orm.attributes import flag_modified

from docolink.documents.events import HasHooks
from docolink.documents.registry import LinkedAttributesMixin
from docolink.exceptions import ConfigurationError, DatabaseError, NotLinkedError
from docolink.models.base import Base, TimestampMixin

logger = logging.getLogger(__name__)


class RecordMixin(LinkedAttributesMixin, HasHooks):
    """Makes a declarative model usable as the root of a document graph.

    Item access reads and writes mapped columns. ``save()`` fires the record's
    own creating/saving hooks, then adds and flushes it through its session.
    Committing is left to whoever owns the session.
    """

    def _column_names(self) -> list[str]:
        return inspect(type(self)).column_attrs.keys()

    def _require_column(self, name: str) -> None:
        if name not in self._column_names():
            raise ConfigurationError(f"{type(self).__name__} has no column {name}")

    def __getitem__(self, name: str) -> Any:
        self._require_column(name)
        return getattr(self, name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._require_column(name)
        setattr(self, name, value)
        # JSON columns don't track in-place changes
        flag_modified(self, name)

    def __getattr__(self, name: str) -> Any:
        # Only called when normal lookup fails
        if not name.startswith("_"):
            config = self.linked_attribute_config(name)
            if config is not None:
                return self.get_linked_attribute(name, config)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_"):
            config = self.linked_attribute_config(name)
            if config is not None:
                self.set_linked_attribute(name, config, value)
                return
        super().__setattr__(name, value)

    def _raw_get(self, name: str) -> Any:
        return self[name]

    def _raw_set(self, name: str, value: Any) -> None:
        self[name] = value

    def _raw_forget(self, name: str) -> None:
        self[name] = None

    def _raw_original(self, name: str) -> Any:
        """The column value as last loaded from or flushed to the database."""
        history = inspect(self).attrs[name].history
        if history.deleted:
            return history.deleted[0]
        if history.unchanged:
            return history.unchanged[0]
        return None

    def is_new(self) -> bool:
        return not inspect(self).persistent

    def save(self) -> bool:
        """
        Flush this record through its session.

        Returns:
            True, or False if a listener vetoed

        Raises:
            NotLinkedError: If the record isn't attached to a session
            DatabaseError: If the flush fails
        """
        session = object_session(self)
        if session is None:
            raise NotLinkedError(f"{type(self).__name__} isn't attached to a session")

        is_new = self.is_new()
        if is_new and not self.fire_hook("creating"):
            return False
        if not self.fire_hook("saving"):
            return False

        try:
            session.add(self)
            session.flush()
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseError(f"Failed to save {type(self).__name__}: {str(e)}", e) from e

        logger.debug("Saved %s", self)
        self.fire_hook("saved", halt=False)
        if is_new:
            self.fire_hook("created", halt=False)
        return True


class Record(RecordMixin, Base, TimestampMixin):
    """General purpose record with a single JSON data column."""

    __tablename__ = "records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(100), nullable=False, index=True, default="record")
    data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True, default=dict)

    def __repr__(self) -> str:
        return f"<Record(id={self.id!r}, kind={self.kind!r})>"
