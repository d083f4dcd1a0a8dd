"""Exception hierarchy for accinfo."""

from __future__ import annotations


class AccinfoError(Exception):
    """Base class for accinfo errors."""


# ─── Importer ────────────────────────────────────────────────────────────


class ImporterError(AccinfoError):
    """The export could not be turned into a record collection."""


class MalformedInput(ImporterError):
    pass


class MissingTitle(ImporterError):
    pass


# ─── Codec ───────────────────────────────────────────────────────────────


class CodecError(AccinfoError):
    """The database file could not be encrypted or decrypted."""


class UnsupportedFormat(CodecError):
    pass


class AuthenticationFailed(CodecError):
    """Wrong password or corrupted database.

    The two causes are deliberately indistinguishable.
    """

    def __init__(self, message: str = "wrong password or corrupted database") -> None:
        super().__init__(message)


class MalformedPayload(CodecError):
    pass


# ─── Query ───────────────────────────────────────────────────────────────


class QueryError(AccinfoError):
    """A lookup request was rejected."""


class InvalidParameters(QueryError):
    pass
