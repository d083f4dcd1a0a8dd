"""
accinfo — encrypted account database with a read-only query API.

Converts a KeePass XML export into a single authenticated-encrypted file and
serves lookups over it. Plaintext only ever lives in process memory.
"""

__version__ = "0.9.0"
APP_NAME = "accinfo"
