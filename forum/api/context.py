"""GraphQL context — carries the DB session, caller and loaders into resolvers."""

import asyncio

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.fastapi import BaseContext

from forum.config import settings
from forum.database import get_db
from forum.loaders import create_user_loader, create_vote_loader
from forum.store import store


class ForumContext(BaseContext):
    """
    Per-request state handed to every resolver.

    ``user_id`` is None for anonymous callers.  The two loaders are
    created here, never shared, and die with the request.
    """

    def __init__(self, db: AsyncSession, session_id: str | None, user_id: int | None) -> None:
        super().__init__()
        self.db = db
        # Serialises every statement issued on ``db`` during this request.
        self.db_lock = asyncio.Lock()
        self.session_id = session_id
        self.user_id = user_id
        self.user_loader = create_user_loader(db, self.db_lock)
        self.vote_loader = create_vote_loader(db, self.db_lock)


async def get_context(request: Request, db: AsyncSession = Depends(get_db)) -> ForumContext:
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    user_id = await store.get_session_user(session_id) if session_id else None
    return ForumContext(db=db, session_id=session_id, user_id=user_id)
