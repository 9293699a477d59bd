from __future__ import annotations

import collections
from typing import Callable, Generic, Iterator, TypeVar

T = TypeVar("T")

DEFAULT_CAPACITY = 100


def validate_capacity(capacity) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
        raise ValueError(f"capacity must be a positive integer, got {capacity!r}")
    return capacity


class BoundedRecordStore(Generic[T]):
    """insertion-ordered records of one kind, capped at `capacity`.

    overflow drops the oldest records. iteration and `find_first()` go
    oldest -> newest so the earliest retained match always wins.

    storage only: appending never notifies anyone.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self._capacity = validate_capacity(capacity)
        self._items: collections.deque[T] = collections.deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    @capacity.setter
    def capacity(self, value: int):
        self._capacity = validate_capacity(value)
        self._evict()

    def append(self, record: T):
        self._items.append(record)
        self._evict()

    def _evict(self):
        while len(self._items) > self._capacity:
            self._items.popleft()

    def find_first(self, predicate: Callable[[T], bool]) -> T | None:
        """first (oldest) retained record satisfying `predicate`, else `None`"""
        for record in self._items:
            if predicate(record):
                return record
        return None

    def snapshot(self) -> list[T]:
        return list(self._items)

    def clear(self):
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        # iterate a copy so callers can't trip over concurrent appends
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"<BoundedRecordStore {len(self._items)}/{self._capacity}>"
