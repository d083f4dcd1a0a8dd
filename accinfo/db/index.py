"""
In-memory query index over a decrypted RecordCollection.

Built once per load and never mutated; every lookup structure is created in
__init__ and exposed through read-only methods, so a single instance can be
shared across concurrent request handlers without locking.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from accinfo.db.models import Record, RecordCollection


@dataclass(frozen=True)
class IndexedRecord:
    """A record together with its load-time id (its position in the collection)."""

    id: int
    record: Record


class QueryIndex:
    """Read-only lookup structures over one collection."""

    def __init__(self, collection: RecordCollection) -> None:
        self._collection = collection
        self._items: tuple[IndexedRecord, ...] = tuple(
            IndexedRecord(i, rec) for i, rec in enumerate(collection.records)
        )

        # Sorted (casefolded title, id) pairs: a prefix scan is one bisect
        # plus a contiguous run.
        self._titles: tuple[tuple[str, int], ...] = tuple(
            sorted((item.record.title.casefold(), item.id) for item in self._items)
        )

        by_user: dict[str, list[int]] = {}
        by_group: dict[tuple[str, ...], list[int]] = {}
        for item in self._items:
            rec = item.record
            if rec.username:
                by_user.setdefault(rec.username.casefold(), []).append(item.id)
            by_group.setdefault(rec.group_path, []).append(item.id)

        self._by_user = MappingProxyType({k: tuple(v) for k, v in by_user.items()})
        self._by_group = MappingProxyType({k: tuple(v) for k, v in by_group.items()})

        self._search_text: tuple[str, ...] = tuple(
            "\0".join((it.record.title, it.record.url, it.record.notes)).casefold()
            for it in self._items
        )

    # ─── Introspection ───────────────────────────────────────────────────

    @property
    def collection(self) -> RecordCollection:
        return self._collection

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[IndexedRecord]:
        return iter(self._items)

    def groups(self) -> list[tuple[str, ...]]:
        """Distinct group paths, sorted."""
        return sorted(self._by_group)

    # ─── Lookups ─────────────────────────────────────────────────────────

    def get(self, record_id: int) -> IndexedRecord | None:
        if 0 <= record_id < len(self._items):
            return self._items[record_id]
        return None

    def find_by_title_prefix(self, prefix: str) -> tuple[IndexedRecord, ...]:
        """Case-insensitive title prefix match, in collection order."""
        key = prefix.casefold()
        start = bisect.bisect_left(self._titles, (key, -1))
        ids = []
        for title, rid in self._titles[start:]:
            if not title.startswith(key):
                break
            ids.append(rid)
        return self._resolve(sorted(ids))

    def find_by_group(self, path: Sequence[str], *, exact: bool = False) -> tuple[IndexedRecord, ...]:
        """Records whose group_path equals ``path`` or, unless exact, lies beneath it."""
        path = tuple(path)
        if exact:
            return self._resolve(self._by_group.get(path, ()))
        n = len(path)
        ids = [
            rid
            for group, members in self._by_group.items()
            if group[:n] == path
            for rid in members
        ]
        return self._resolve(sorted(ids))

    def find_by_username(self, username: str) -> tuple[IndexedRecord, ...]:
        return self._resolve(self._by_user.get(username.casefold(), ()))

    def search(self, text: str) -> tuple[IndexedRecord, ...]:
        """Case-insensitive substring match over title, url and notes."""
        needle = text.casefold()
        if not needle:
            return self._items
        return tuple(
            self._items[i] for i, hay in enumerate(self._search_text) if needle in hay
        )

    def _resolve(self, ids: Sequence[int]) -> tuple[IndexedRecord, ...]:
        return tuple(self._items[i] for i in ids)
