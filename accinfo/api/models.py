"""Pydantic response models for the query API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from accinfo.db.index import IndexedRecord


class RecordOut(BaseModel):
    id: int
    uuid: str | None = None
    group_path: list[str]
    title: str
    username: str
    password: str
    url: str
    notes: str

    @classmethod
    def from_indexed(cls, item: IndexedRecord) -> RecordOut:
        rec = item.record
        return cls(
            id=item.id,
            uuid=rec.uuid,
            group_path=list(rec.group_path),
            title=rec.title,
            username=rec.username,
            password=rec.password,
            url=rec.url,
            notes=rec.notes,
        )


class RecordList(BaseModel):
    found: bool
    total: int
    records: list[RecordOut]

    @classmethod
    def of(cls, items: tuple[IndexedRecord, ...]) -> RecordList:
        return cls(
            found=bool(items),
            total=len(items),
            records=[RecordOut.from_indexed(i) for i in items],
        )


class GroupList(BaseModel):
    total: int
    groups: list[list[str]]


class PingResponse(BaseModel):
    reply: str
    server: str
    now: datetime
    records: int
