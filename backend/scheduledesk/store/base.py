"""Abstract key-value store consumed by the schedule, timer, and channel services."""
from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Optional


class KeyValueStore(ABC):
    """String-keyed store with Redis-shaped list and set primitives.

    Backends raise ``scheduledesk.errors.Unavailable`` when the underlying store
    cannot be reached. Writes issued inside ``atomic()`` become visible to other
    readers together.
    """

    # --- strings ---
    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, *keys: str) -> None:
        ...

    # --- lists ---
    @abstractmethod
    def list_append(self, key: str, *values: str) -> None:
        ...

    @abstractmethod
    def list_range(self, key: str) -> list[str]:
        """Return the whole list in insertion order."""

    @abstractmethod
    def list_remove(self, key: str, value: str) -> None:
        """Remove every occurrence of ``value``."""

    @abstractmethod
    def list_contains(self, key: str, value: str) -> bool:
        ...

    # --- sets ---
    @abstractmethod
    def set_add(self, key: str, member: str) -> None:
        ...

    @abstractmethod
    def set_remove(self, key: str, member: str) -> None:
        ...

    @abstractmethod
    def set_members(self, key: str) -> set[str]:
        ...

    @abstractmethod
    def set_contains(self, key: str, member: str) -> bool:
        ...

    # --- batching ---
    @abstractmethod
    @contextmanager
    def atomic(self) -> Iterator[None]:
        ...

    def get_many(self, keys: list[str]) -> list[Optional[str]]:
        return [self.get(k) for k in keys]
