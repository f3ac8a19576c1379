"""
Post service — lifecycle of the Post aggregate and the cursor feed.

Design notes
------------
- Ownership is checked against ``post.creator_id`` and repeated in the
  ``WHERE`` clause of the write, so a non-owner can never touch the row.
- Updates are targeted column writes (``title``, ``text``); ``points``
  and ``created_at`` are never rewritten from application memory.
- Deleting a post removes its ``updoot`` rows and the post itself in one
  transaction.  The ``ON DELETE CASCADE`` foreign key backs this up on
  PostgreSQL, but the explicit delete keeps backends without enforced
  foreign keys free of orphaned votes too.
- The feed fetches ``limit + 1`` rows; the extra row only answers
  "is there another page?" and is never returned.
"""
import logging

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from forum.database import atomic
from forum.errors import Forbidden, NotFound
from forum.models import Post, Vote
from forum.pagination import clamp_limit, decode_cursor
from forum.schemas import PostInput, PostPage

logger = logging.getLogger(__name__)


async def list_posts(db: AsyncSession, limit: int, cursor: str | None = None) -> PostPage:
    """Return up to *limit* posts older than *cursor*, newest first."""
    take = clamp_limit(limit)

    q = select(Post).order_by(Post.created_at.desc(), Post.id.desc()).limit(take + 1)
    if cursor:
        created_at, post_id = decode_cursor(cursor)
        q = q.where(
            or_(
                Post.created_at < created_at,
                and_(Post.created_at == created_at, Post.id < post_id),
            )
        )

    rows = (await db.execute(q)).scalars().all()
    return PostPage(posts=list(rows[:take]), has_more=len(rows) == take + 1)


async def get_post(db: AsyncSession, post_id: int) -> Post | None:
    result = await db.execute(select(Post).where(Post.id == post_id))
    return result.scalar_one_or_none()


async def _get_owned_post(db: AsyncSession, post_id: int, caller_id: int) -> Post:
    post = await get_post(db, post_id)
    if post is None:
        raise NotFound(f"post {post_id} not found")
    if post.creator_id != caller_id:
        raise Forbidden(f"user {caller_id} does not own post {post_id}")
    return post


async def create_post(db: AsyncSession, data: PostInput, creator_id: int) -> Post:
    post = Post(title=data.title, text=data.text, creator_id=creator_id, points=0)
    async with atomic(db):
        db.add(post)
        await db.flush()
    logger.info("Post %s created by user %s", post.id, creator_id)
    return post


async def update_post(
    db: AsyncSession, post_id: int, data: PostInput, caller_id: int
) -> Post:
    """
    Rewrite the title and text of a post owned by *caller_id*.

    Raises ``NotFound`` for an unknown id and ``Forbidden`` for a caller
    who is not the creator; in both cases the row is left untouched.
    """
    async with atomic(db):
        post = await _get_owned_post(db, post_id, caller_id)
        await db.execute(
            update(Post)
            .where(Post.id == post_id, Post.creator_id == caller_id)
            .values(title=data.title, text=data.text)
        )
    await db.refresh(post)
    return post


async def delete_post(db: AsyncSession, post_id: int, caller_id: int) -> None:
    """
    Delete a post owned by *caller_id* together with all of its votes.

    Raises ``NotFound`` / ``Forbidden`` like ``update_post``.
    """
    async with atomic(db):
        await _get_owned_post(db, post_id, caller_id)
        await db.execute(delete(Vote).where(Vote.post_id == post_id))
        await db.execute(
            delete(Post).where(Post.id == post_id, Post.creator_id == caller_id)
        )
    logger.info("Post %s deleted by user %s", post_id, caller_id)
