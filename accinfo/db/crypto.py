"""
Key derivation and AES-256-GCM for the database file.

The key is derived from the user's password with scrypt and a random
per-file salt. Each encryption draws a fresh 12-byte nonce; the 16-byte GCM
tag is returned separately so the container can store it in its own field.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from accinfo.errors import AuthenticationFailed, UnsupportedFormat

KEY_SIZE = 32
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16

DEFAULT_LOG_N = 15
DEFAULT_R = 8
DEFAULT_P = 1

MAX_LOG_N = 22
MAX_R = 32
MAX_P = 16

# scrypt needs 128 * r * n bytes of working memory
MAX_KDF_MEMORY = 1024 * 1024 * 1024


@dataclass(frozen=True)
class KdfParams:
    """scrypt parameters; persisted in the container header."""

    salt: bytes
    log_n: int = DEFAULT_LOG_N
    r: int = DEFAULT_R
    p: int = DEFAULT_P

    SIZE = SALT_SIZE + 3

    def __post_init__(self) -> None:
        if len(self.salt) != SALT_SIZE:
            raise ValueError(f"salt must be {SALT_SIZE} bytes, got {len(self.salt)}")
        # Upper bounds stop a crafted header from demanding unbounded memory
        for name, upper in (("log_n", MAX_LOG_N), ("r", MAX_R), ("p", MAX_P)):
            value = getattr(self, name)
            if not 1 <= value <= upper:
                raise ValueError(f"{name} out of range: {value}")
        if self.memory_cost > MAX_KDF_MEMORY:
            raise ValueError(
                f"kdf memory cost {self.memory_cost >> 20} MiB exceeds {MAX_KDF_MEMORY >> 20} MiB"
            )

    @property
    def memory_cost(self) -> int:
        return 128 * self.r * 2**self.log_n

    @classmethod
    def generate(cls, log_n: int = DEFAULT_LOG_N, r: int = DEFAULT_R, p: int = DEFAULT_P) -> KdfParams:
        """Fresh parameters with a new random salt."""
        return cls(salt=secrets.token_bytes(SALT_SIZE), log_n=log_n, r=r, p=p)

    def to_bytes(self) -> bytes:
        return self.salt + bytes((self.log_n, self.r, self.p))

    @classmethod
    def from_bytes(cls, data: bytes) -> KdfParams:
        if len(data) != cls.SIZE:
            raise ValueError(f"kdf params must be {cls.SIZE} bytes, got {len(data)}")
        return cls(salt=bytes(data[:SALT_SIZE]), log_n=data[-3], r=data[-2], p=data[-1])


def derive_key(password: bytes | bytearray, params: KdfParams) -> bytearray:
    """Derive a 32-byte key. The caller owns the result and must wipe() it."""
    kdf = Scrypt(salt=params.salt, length=KEY_SIZE, n=2**params.log_n, r=params.r, p=params.p)
    try:
        return bytearray(kdf.derive(bytes(password)))
    except MemoryError:
        raise UnsupportedFormat(
            f"kdf parameters need {params.memory_cost >> 20} MiB, more than is available"
        ) from None


def wipe(buf: bytearray | None) -> None:
    """Overwrite a mutable secret buffer in place."""
    if buf is None:
        return
    for i in range(len(buf)):
        buf[i] = 0


def new_nonce() -> bytes:
    return secrets.token_bytes(NONCE_SIZE)


def seal(key: bytearray, nonce: bytes, plaintext: bytes, aad: bytes) -> tuple[bytes, bytes]:
    """Encrypt and authenticate. Returns (ciphertext, tag)."""
    out = AESGCM(bytes(key)).encrypt(nonce, plaintext, aad)
    return out[:-TAG_SIZE], out[-TAG_SIZE:]


def open_sealed(key: bytearray, nonce: bytes, ciphertext: bytes, tag: bytes, aad: bytes) -> bytes:
    """Verify and decrypt. Raises AuthenticationFailed on any mismatch."""
    try:
        return AESGCM(bytes(key)).decrypt(nonce, ciphertext + tag, aad)
    except InvalidTag:
        raise AuthenticationFailed() from None
