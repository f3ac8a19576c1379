"""
Request-scoped batch loaders.

A fresh pair of loaders is built for every GraphQL request (see
``api.context.get_context``) and dropped with it, so nothing cached here
outlives the request or leaks to another user.  Within a request, all
``load`` calls made during one event-loop tick collapse into a single
``SELECT ... IN``; repeated keys are served from the loader's cache.

An ``AsyncSession`` cannot run two statements at once, while sibling
GraphQL fields resolve concurrently; loaders that share a session must
therefore share one lock as well.
"""
import asyncio

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.dataloader import DataLoader

from forum.models import User, Vote

VoteKey = tuple[int, int]  # (post_id, user_id)


async def batch_load_users(db: AsyncSession, keys: list[int]) -> list[User | None]:
    result = await db.execute(select(User).where(User.id.in_(set(keys))))
    by_id = {user.id: user for user in result.scalars().all()}
    return [by_id.get(key) for key in keys]


async def batch_load_votes(db: AsyncSession, keys: list[VoteKey]) -> list[Vote | None]:
    condition = or_(
        *(and_(Vote.post_id == post_id, Vote.user_id == user_id) for post_id, user_id in set(keys))
    )
    result = await db.execute(select(Vote).where(condition))
    by_key = {(vote.post_id, vote.user_id): vote for vote in result.scalars().all()}
    return [by_key.get(key) for key in keys]


def create_user_loader(
    db: AsyncSession, lock: asyncio.Lock | None = None
) -> DataLoader[int, User | None]:
    if lock is None:
        lock = asyncio.Lock()

    async def load(keys: list[int]) -> list[User | None]:
        async with lock:
            return await batch_load_users(db, keys)

    return DataLoader(load_fn=load)


def create_vote_loader(
    db: AsyncSession, lock: asyncio.Lock | None = None
) -> DataLoader[VoteKey, Vote | None]:
    if lock is None:
        lock = asyncio.Lock()

    async def load(keys: list[VoteKey]) -> list[Vote | None]:
        async with lock:
            return await batch_load_votes(db, keys)

    return DataLoader(load_fn=load)
