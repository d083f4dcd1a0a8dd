"""
accinfo database — encrypted single-file account store.

Public API:
    encrypt_export(xml, db_path, password)  → import a KeePass export and write the database
    load_collection(db_path, password)      → decrypt to a RecordCollection
    load_index(db_path, password)           → decrypt and build a QueryIndex
    check_password(db_path, password)       → True/False, other errors propagate
"""

from __future__ import annotations

import logging
from pathlib import Path

from accinfo.db import codec
from accinfo.db.crypto import KdfParams
from accinfo.db.importer import ImportResult, MissingTitlePolicy, import_keepass_xml
from accinfo.db.index import IndexedRecord, QueryIndex
from accinfo.db.models import Record, RecordCollection
from accinfo.errors import AuthenticationFailed

logger = logging.getLogger(__name__)


def encrypt_export(
    xml: bytes | str | Path,
    db_path: Path | str,
    password: str,
    *,
    missing_title: MissingTitlePolicy = MissingTitlePolicy.REJECT,
    include_recycle_bin: bool = False,
    kdf: KdfParams | None = None,
) -> ImportResult:
    """Import an export and write it encrypted. Nothing is written if import fails."""
    result = import_keepass_xml(
        xml, missing_title=missing_title, include_recycle_bin=include_recycle_bin
    )
    container = codec.encrypt(result.collection, password, kdf=kdf)
    codec.write_container(db_path, container)
    return result


def load_collection(db_path: Path | str, password: str) -> RecordCollection:
    container = codec.read_container(db_path)
    collection = codec.decrypt(container, password)
    logger.info("Loaded %d records from %s", len(collection), db_path)
    return collection


def load_index(db_path: Path | str, password: str) -> QueryIndex:
    return QueryIndex(load_collection(db_path, password))


def check_password(db_path: Path | str, password: str) -> bool:
    """True when the password opens the database.

    A corrupted file also yields False; the two are indistinguishable.
    """
    try:
        load_collection(db_path, password)
    except AuthenticationFailed:
        return False
    return True


__all__ = [
    "ImportResult",
    "IndexedRecord",
    "KdfParams",
    "MissingTitlePolicy",
    "QueryIndex",
    "Record",
    "RecordCollection",
    "check_password",
    "encrypt_export",
    "import_keepass_xml",
    "load_collection",
    "load_index",
]
