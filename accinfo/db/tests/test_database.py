"""Tests for the accinfo.db public API (import → encrypt → load)."""

import pytest

from accinfo.db import (
    MissingTitlePolicy,
    check_password,
    encrypt_export,
    load_collection,
    load_index,
)
from accinfo.errors import AuthenticationFailed, MissingTitle, UnsupportedFormat

PASSWORD = "12345678"


@pytest.fixture
def db_path(tmp_path, sample_export, fast_kdf):
    path = tmp_path / "accounts.aidb"
    encrypt_export(sample_export, path, PASSWORD, kdf=fast_kdf)
    return path


class TestEncryptExport:
    def test_returns_import_result(self, tmp_path, sample_export, fast_kdf):
        result = encrypt_export(sample_export, tmp_path / "db.aidb", PASSWORD, kdf=fast_kdf)
        assert len(result.collection) == 3
        assert result.dropped_fields["PIN"] == 1

    def test_failed_import_writes_nothing(self, tmp_path, fast_kdf):
        xml = (
            "<KeePassFile><Root><Group><Name>Database</Name>"
            "<Entry><String><Key>UserName</Key><Value>x</Value></String></Entry>"
            "</Group></Root></KeePassFile>"
        )
        path = tmp_path / "db.aidb"
        with pytest.raises(MissingTitle):
            encrypt_export(xml, path, PASSWORD, kdf=fast_kdf)
        assert list(tmp_path.iterdir()) == []

    def test_policy_passed_through(self, tmp_path, fast_kdf):
        xml = "<KeePassFile><Root><Group><Entry/></Group></Root></KeePassFile>"
        path = tmp_path / "db.aidb"
        encrypt_export(xml, path, PASSWORD, missing_title=MissingTitlePolicy.AUTONAME, kdf=fast_kdf)
        assert load_collection(path, PASSWORD).records[0].title == "Untitled #1"


class TestLoad:
    def test_load_index(self, db_path):
        index = load_index(db_path, PASSWORD)
        assert len(index) == 3
        assert [i.record.title for i in index.find_by_title_prefix("ban")] == ["Bank", "Banking App"]

    def test_wrong_password(self, db_path):
        with pytest.raises(AuthenticationFailed):
            load_index(db_path, "wrong-password")

    def test_not_a_database(self, tmp_path):
        path = tmp_path / "plain.txt"
        path.write_text("hello")
        with pytest.raises(UnsupportedFormat):
            load_collection(path, PASSWORD)


class TestCheckPassword:
    def test_correct(self, db_path):
        assert check_password(db_path, PASSWORD) is True

    def test_wrong(self, db_path):
        assert check_password(db_path, "87654321") is False

    def test_format_errors_propagate(self, tmp_path):
        path = tmp_path / "plain.txt"
        path.write_text("hello")
        with pytest.raises(UnsupportedFormat):
            check_password(path, PASSWORD)
