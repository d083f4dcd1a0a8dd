"""Tests for the record model."""

import pytest
from pydantic import ValidationError

from accinfo.db.models import FORMAT_VERSION, Record, RecordCollection


class TestRecord:
    def test_defaults(self):
        rec = Record(title="Bank")
        assert rec.group_path == ()
        assert rec.username == rec.password == rec.url == rec.notes == ""
        assert rec.uuid is None

    @pytest.mark.parametrize("title", ["", "   "])
    def test_blank_title_rejected(self, title):
        with pytest.raises(ValidationError):
            Record(title=title)

    def test_frozen(self):
        rec = Record(title="Bank")
        with pytest.raises(ValidationError):
            rec.title = "Other"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            Record(title="Bank", pin="0000")


class TestRecordCollection:
    def test_defaults(self):
        coll = RecordCollection()
        assert coll.format_version == FORMAT_VERSION
        assert coll.created_at.tzinfo is not None
        assert len(coll) == 0

    def test_json_roundtrip(self):
        coll = RecordCollection(records=(Record(group_path=("a", "b"), title="x", notes="ü"),))
        assert RecordCollection.from_json_bytes(coll.to_json_bytes()) == coll
