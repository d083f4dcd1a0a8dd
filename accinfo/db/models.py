"""
Record model — one account entry and the collection that owns it.

Both models are frozen: a collection is built once (by the importer or by
the codec) and never mutated afterwards.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

FORMAT_VERSION = 2


class Record(BaseModel):
    """A single credential entry."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    group_path: tuple[str, ...] = ()
    title: str
    username: str = ""
    password: str = ""
    url: str = ""
    notes: str = ""
    uuid: str | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be empty")
        return v


class RecordCollection(BaseModel):
    """Ordered records plus the metadata persisted alongside them."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    format_version: int = FORMAT_VERSION
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    records: tuple[Record, ...] = ()

    def __len__(self) -> int:
        return len(self.records)

    def to_json_bytes(self) -> bytes:
        """Canonical encoding used as the cipher plaintext."""
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_json_bytes(cls, data: bytes) -> RecordCollection:
        return cls.model_validate_json(data)
