"""
Encrypted container codec.

File layout (all integers big-endian):

    magic           4 bytes   b"AIDB"
    format_version  u16
    kdf_params      19 bytes  salt(16) || log2(n) || r || p
    nonce           12 bytes
    integrity_tag   16 bytes  AES-256-GCM tag
    ciphertext      rest of file

Everything from magic through nonce is bound as associated data, so the
header cannot be altered without failing authentication. The pre-2 layout
(magic b"aidb", unsalted MD5 key, unauthenticated AES-CTR) is recognised only
to be refused.
"""

from __future__ import annotations

import logging
import os
import struct
import tempfile
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from accinfo.db import crypto
from accinfo.db.crypto import KdfParams
from accinfo.db.models import FORMAT_VERSION, RecordCollection
from accinfo.errors import MalformedPayload, UnsupportedFormat

logger = logging.getLogger(__name__)

MAGIC = b"AIDB"
LEGACY_MAGIC = b"aidb"
SUPPORTED_VERSIONS = frozenset({FORMAT_VERSION})

_VERSION = struct.Struct(">H")
HEADER_LEN = len(MAGIC) + _VERSION.size + KdfParams.SIZE + crypto.NONCE_SIZE
MIN_CONTAINER_LEN = HEADER_LEN + crypto.TAG_SIZE


@dataclass(frozen=True)
class EncryptedContainer:
    """Parsed on-disk representation. Holds no secrets."""

    format_version: int
    kdf: KdfParams
    nonce: bytes
    tag: bytes
    ciphertext: bytes
    magic: bytes = MAGIC

    @property
    def salt(self) -> bytes:
        return self.kdf.salt

    def header(self) -> bytes:
        """Associated data: magic, version, kdf params and nonce."""
        return self.magic + _VERSION.pack(self.format_version) + self.kdf.to_bytes() + self.nonce

    def to_bytes(self) -> bytes:
        return self.header() + self.tag + self.ciphertext

    @classmethod
    def from_bytes(cls, data: bytes) -> EncryptedContainer:
        """Parse a container without touching any key material.

        Raises:
            UnsupportedFormat: Bad magic, unknown version, or truncated header.
        """
        magic = bytes(data[: len(MAGIC)])
        if magic == LEGACY_MAGIC:
            raise UnsupportedFormat(
                "legacy unauthenticated database format; re-import the export to upgrade"
            )
        if magic != MAGIC:
            raise UnsupportedFormat("not an accinfo database (bad magic)")
        if len(data) < MIN_CONTAINER_LEN:
            raise UnsupportedFormat("database too small")

        pos = len(MAGIC)
        (version,) = _VERSION.unpack_from(data, pos)
        if version not in SUPPORTED_VERSIONS:
            raise UnsupportedFormat(f"unsupported format version: {version}")
        pos += _VERSION.size

        try:
            kdf = KdfParams.from_bytes(bytes(data[pos : pos + KdfParams.SIZE]))
        except ValueError as e:
            raise UnsupportedFormat(f"invalid kdf parameters: {e}") from e
        pos += KdfParams.SIZE

        nonce = bytes(data[pos : pos + crypto.NONCE_SIZE])
        pos += crypto.NONCE_SIZE
        tag = bytes(data[pos : pos + crypto.TAG_SIZE])
        pos += crypto.TAG_SIZE

        return cls(
            format_version=version,
            kdf=kdf,
            nonce=nonce,
            tag=tag,
            ciphertext=bytes(data[pos:]),
            magic=magic,
        )


# ─── Encrypt / Decrypt ───────────────────────────────────────────────────


def _password_buffer(password: str) -> bytearray:
    return bytearray(password.encode("utf-8"))


def encrypt(
    collection: RecordCollection,
    password: str,
    *,
    kdf: KdfParams | None = None,
) -> EncryptedContainer:
    """Encrypt a collection under a fresh salt and nonce.

    Output is never deterministic: two calls with identical arguments yield
    different salts, nonces and ciphertexts. Pass ``kdf`` only to choose the
    work factor; its salt should be freshly generated.
    """
    if kdf is None:
        kdf = KdfParams.generate()
    nonce = crypto.new_nonce()
    container = EncryptedContainer(
        format_version=FORMAT_VERSION, kdf=kdf, nonce=nonce, tag=b"", ciphertext=b""
    )

    plaintext = collection.to_json_bytes()
    pw = _password_buffer(password)
    key = None
    try:
        key = crypto.derive_key(pw, kdf)
        ciphertext, tag = crypto.seal(key, nonce, plaintext, container.header())
    finally:
        crypto.wipe(key)
        crypto.wipe(pw)

    logger.debug("Encrypted %d records (%d bytes)", len(collection), len(ciphertext))
    return EncryptedContainer(
        format_version=FORMAT_VERSION, kdf=kdf, nonce=nonce, tag=tag, ciphertext=ciphertext
    )


def decrypt(container: EncryptedContainer, password: str) -> RecordCollection:
    """Authenticate and decrypt a container.

    Raises:
        UnsupportedFormat: Unknown magic or version (checked before key derivation).
        AuthenticationFailed: Wrong password or tampered data.
        MalformedPayload: Authenticated plaintext is not a valid collection.
    """
    if container.magic != MAGIC or container.format_version not in SUPPORTED_VERSIONS:
        raise UnsupportedFormat(f"unsupported format version: {container.format_version}")

    pw = _password_buffer(password)
    key = None
    try:
        key = crypto.derive_key(pw, container.kdf)
        plaintext = crypto.open_sealed(
            key, container.nonce, container.ciphertext, container.tag, container.header()
        )
    finally:
        crypto.wipe(key)
        crypto.wipe(pw)

    try:
        collection = RecordCollection.from_json_bytes(plaintext)
    except ValidationError as e:
        raise MalformedPayload(f"payload is not a record collection ({e.error_count()} errors)") from None
    if collection.format_version not in SUPPORTED_VERSIONS:
        raise UnsupportedFormat(f"unsupported payload version: {collection.format_version}")
    return collection


# ─── File I/O ────────────────────────────────────────────────────────────


def read_container(path: Path | str) -> EncryptedContainer:
    return EncryptedContainer.from_bytes(Path(path).read_bytes())


def write_container(path: Path | str, container: EncryptedContainer) -> Path:
    """Write atomically with mode 600. Returns the final path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(container.to_bytes())
            f.flush()
            os.fsync(f.fileno())
        tmp.chmod(0o600)
        tmp.replace(path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    logger.info("Wrote database %s (%d bytes)", path, len(container.ciphertext) + MIN_CONTAINER_LEN)
    return path
