"""
Vote service — keeps the ``updoot`` ledger and ``post.points`` in step.

Design notes
------------
- The ledger write and the points adjustment share one transaction
  (``atomic``): either both land or neither does.
- ``points`` is only ever changed with a relative ``UPDATE ... SET
  points = points + :delta`` so concurrent voters on one post cannot
  overwrite each other's increments.
- The post row is locked (``SELECT ... FOR UPDATE``) before the ledger is
  read, which serialises competing votes on the same post and turns a
  concurrently deleted post into a clean ``NotFound``.  SQLite ignores
  the lock clause; it serialises writers on its own.
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from forum.database import atomic
from forum.errors import NotFound
from forum.models import Post, Vote

logger = logging.getLogger(__name__)


def normalize_vote(value: int) -> int:
    """Map any positive input to +1 and everything else to -1."""
    return 1 if value > 0 else -1


async def apply_vote(db: AsyncSession, post_id: int, user_id: int, value: int) -> int:
    """
    Record *user_id*'s vote on *post_id* and return the change in points.

    - no previous vote: insert it, points move by the vote (+1 or -1)
    - same direction again: nothing changes, returns 0
    - opposite direction: flip the row, points move by twice the vote

    Raises ``NotFound`` when the post does not exist.
    """
    sign = normalize_vote(value)

    async with atomic(db):
        locked = await db.execute(
            select(Post.id).where(Post.id == post_id).with_for_update()
        )
        if locked.scalar_one_or_none() is None:
            raise NotFound(f"post {post_id} not found")

        result = await db.execute(
            select(Vote)
            .where(Vote.post_id == post_id, Vote.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        existing = result.scalar_one_or_none()

        if existing is None:
            db.add(Vote(post_id=post_id, user_id=user_id, value=sign))
            delta = sign
        elif existing.value != sign:
            existing.value = sign
            delta = 2 * sign
        else:
            return 0

        await db.flush()
        await db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(points=Post.points + delta)
        )

    logger.debug("Vote post=%s user=%s value=%s delta=%s", post_id, user_id, sign, delta)
    return delta


async def get_vote(db: AsyncSession, post_id: int, user_id: int) -> Vote | None:
    result = await db.execute(
        select(Vote).where(Vote.post_id == post_id, Vote.user_id == user_id)
    )
    return result.scalar_one_or_none()
