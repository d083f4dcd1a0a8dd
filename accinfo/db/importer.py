"""
KeePass 2.x XML export → RecordCollection.

Only the structure needed for a flat record list is read:

    KeePassFile/Meta/RecycleBinUUID
    KeePassFile/Root/Group            (database root, name not part of paths)
        Group/Name, Group/UUID
        Group/Entry/UUID
        Group/Entry/String/{Key,Value}
        Group/Entry/History           (ignored: older revisions)
        Group/Group/...               (nested folders)

String keys are mapped through FIELD_MAP. Anything else (custom fields,
attachments, auto-type) is dropped and counted, never folded into notes.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from accinfo.db.models import Record, RecordCollection
from accinfo.errors import MalformedInput, MissingTitle

logger = logging.getLogger(__name__)

FIELD_MAP: dict[str, str] = {
    "Title": "title",
    "UserName": "username",
    "Password": "password",
    "URL": "url",
    "Notes": "notes",
}


class MissingTitlePolicy(StrEnum):
    REJECT = "reject"      # raise MissingTitle
    AUTONAME = "autoname"  # "Untitled #N", N = 1-based ordinal among imported entries
    SKIP = "skip"          # drop the entry


@dataclass
class ImportResult:
    collection: RecordCollection
    dropped_fields: Counter[str] = field(default_factory=Counter)
    skipped_entries: int = 0


def import_keepass_xml(
    source: bytes | str | Path,
    *,
    missing_title: MissingTitlePolicy = MissingTitlePolicy.REJECT,
    include_recycle_bin: bool = False,
) -> ImportResult:
    """Parse a KeePass XML export into a record collection.

    Args:
        source: Raw XML (bytes or str) or a path to the export file.
        missing_title: What to do with entries that have no title.
        include_recycle_bin: Import entries from the recycle bin group too.

    Raises:
        MalformedInput: Not well-formed XML, or not a KeePass export.
        MissingTitle: An entry lacks a title and the policy is REJECT.
    """
    root = _parse(source)
    if root.tag != "KeePassFile":
        raise MalformedInput(f"expected <KeePassFile> root element, got <{root.tag}>")
    db_group = root.find("Root/Group")
    if db_group is None:
        raise MalformedInput("export has no Root/Group element")

    recycle_bin = None
    if not include_recycle_bin:
        recycle_bin = (root.findtext("Meta/RecycleBinUUID") or "").strip() or None

    result = ImportResult(collection=RecordCollection())
    records: list[Record] = []
    ordinal = 0

    for path, entry in _walk(db_group, (), recycle_bin):
        ordinal += 1
        values, dropped = _entry_fields(entry)
        result.dropped_fields.update(dropped)
        uuid = (entry.findtext("UUID") or "").strip() or None

        if not values.get("title", "").strip():
            if missing_title == MissingTitlePolicy.REJECT:
                raise MissingTitle(f"entry #{ordinal} (uuid={uuid}) has no title")
            if missing_title == MissingTitlePolicy.SKIP:
                logger.info("Skipping untitled entry #%d (uuid=%s)", ordinal, uuid)
                result.skipped_entries += 1
                continue
            values["title"] = f"Untitled #{ordinal}"

        records.append(Record(group_path=path, uuid=uuid, **values))

    result.collection = RecordCollection(records=tuple(records))
    if result.dropped_fields:
        logger.info(
            "Dropped unmapped fields: %s",
            ", ".join(f"{k}={v}" for k, v in sorted(result.dropped_fields.items())),
        )
    logger.info("Imported %d records (%d skipped)", len(records), result.skipped_entries)
    return result


def _parse(source: bytes | str | Path) -> ET.Element:
    try:
        if isinstance(source, Path):
            return ET.parse(source).getroot()
        return ET.fromstring(source)
    except ET.ParseError as e:
        raise MalformedInput(f"export is not well-formed XML: {e}") from e


def _walk(group: ET.Element, path: tuple[str, ...], recycle_bin: str | None):
    """Yield (group_path, entry) in document order, depth first."""
    for child in group:
        if child.tag == "Entry":
            yield path, child
        elif child.tag == "Group":
            if recycle_bin and (child.findtext("UUID") or "").strip() == recycle_bin:
                continue
            name = (child.findtext("Name") or "").strip()
            yield from _walk(child, path + (name,), recycle_bin)


def _entry_fields(entry: ET.Element) -> tuple[dict[str, str], list[str]]:
    """Map an entry's <String> elements to Record attributes."""
    values: dict[str, str] = {}
    dropped: list[str] = []
    for s in entry.findall("String"):
        key = s.findtext("Key") or ""
        attr = FIELD_MAP.get(key)
        if attr is None:
            dropped.append(key)
            continue
        values[attr] = s.findtext("Value") or ""
    for tag in ("Binary", "AutoType"):
        if entry.find(tag) is not None:
            dropped.append(tag)
    return values, dropped
