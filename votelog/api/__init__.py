"""HTTP interface for the vote log.

``POST /votes/{userId}`` appends a vote, ``GET /votes/{userId}?syncId=N``
reads everything appended since cursor N.
"""

from .app import create_app

__all__ = ["create_app"]
