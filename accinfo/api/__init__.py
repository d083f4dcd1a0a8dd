"""HTTP query service for accinfo."""

from accinfo.api.service import create_app, get_index

__all__ = ["create_app", "get_index"]
