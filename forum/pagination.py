"""
Cursor helpers for the post feed.

The feed is ordered by ``(created_at DESC, id DESC)``.  A cursor is the
URL-safe base64 of ``"<iso timestamp>|<id>"`` taken from the last post of
a page; the next page holds the rows strictly after that pair in feed
order, so posts sharing a timestamp are neither skipped nor repeated.
"""
import base64
import binascii
from datetime import datetime

from forum.config import settings
from forum.errors import InvalidCursor
from forum.models import Post


def clamp_limit(limit: int) -> int:
    """Bound a requested page size to ``[1, MAX_PAGE_SIZE]``."""
    return max(1, min(limit, settings.MAX_PAGE_SIZE))


def encode_cursor(post: Post) -> str:
    raw = f"{post.created_at.isoformat()}|{post.id}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple[datetime, int]:
    """Return the ``(created_at, id)`` pair encoded in *cursor*."""
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        timestamp, _, post_id = raw.rpartition("|")
        return datetime.fromisoformat(timestamp), int(post_id)
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise InvalidCursor() from exc
