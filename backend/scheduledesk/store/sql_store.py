"""SQLAlchemy-backed key-value store (default backend)."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduledesk.errors import Unavailable
from scheduledesk.models.key_value import KVEntry, KVListItem, KVSetMember
from scheduledesk.store.base import KeyValueStore

logger = logging.getLogger(__name__)


class SqlKeyValueStore(KeyValueStore):
    """Key-value primitives on the ``kv_*`` tables of one request session.

    Outside ``atomic()`` every write commits immediately. Inside it, writes are
    flushed (so later reads in the block see them) and committed once on exit.
    """

    def __init__(self, db: Session):
        self._db = db
        self._depth = 0

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("Key-value store failure: %s", exc)
            self._db.rollback()
            raise Unavailable() from exc

    def _written(self) -> None:
        self._db.flush()
        if self._depth == 0:
            self._db.commit()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                self._db.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            with self._guard():
                self._db.commit()

    # --- strings ---
    def get(self, key: str) -> Optional[str]:
        with self._guard():
            entry = self._db.get(KVEntry, key)
            return entry.value if entry else None

    def get_many(self, keys: list[str]) -> list[Optional[str]]:
        if not keys:
            return []
        with self._guard():
            rows = self._db.query(KVEntry).filter(KVEntry.key.in_(keys)).all()
        found = {row.key: row.value for row in rows}
        return [found.get(k) for k in keys]

    def set(self, key: str, value: str) -> None:
        with self._guard():
            entry = self._db.get(KVEntry, key)
            if entry:
                entry.value = value
            else:
                self._db.add(KVEntry(key=key, value=value))
            self._written()

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        with self._guard():
            for model in (KVEntry, KVListItem, KVSetMember):
                self._db.query(model).filter(model.key.in_(keys)).delete(synchronize_session="fetch")
            self._written()

    # --- lists ---
    def list_append(self, key: str, *values: str) -> None:
        if not values:
            return
        with self._guard():
            for value in values:
                self._db.add(KVListItem(key=key, value=value))
            self._written()

    def list_range(self, key: str) -> list[str]:
        with self._guard():
            rows = (
                self._db.query(KVListItem.value)
                .filter(KVListItem.key == key)
                .order_by(KVListItem.item_id)
                .all()
            )
        return [row.value for row in rows]

    def list_remove(self, key: str, value: str) -> None:
        with self._guard():
            self._db.query(KVListItem).filter(
                KVListItem.key == key, KVListItem.value == value
            ).delete(synchronize_session="fetch")
            self._written()

    def list_contains(self, key: str, value: str) -> bool:
        with self._guard():
            return (
                self._db.query(KVListItem.item_id)
                .filter(KVListItem.key == key, KVListItem.value == value)
                .first()
                is not None
            )

    # --- sets ---
    def set_add(self, key: str, member: str) -> None:
        with self._guard():
            if self._db.get(KVSetMember, (key, member)) is None:
                self._db.add(KVSetMember(key=key, member=member))
            self._written()

    def set_remove(self, key: str, member: str) -> None:
        with self._guard():
            self._db.query(KVSetMember).filter(
                KVSetMember.key == key, KVSetMember.member == member
            ).delete(synchronize_session="fetch")
            self._written()

    def set_members(self, key: str) -> set[str]:
        with self._guard():
            rows = self._db.query(KVSetMember.member).filter(KVSetMember.key == key).all()
        return {row.member for row in rows}

    def set_contains(self, key: str, member: str) -> bool:
        with self._guard():
            return self._db.get(KVSetMember, (key, member)) is not None
