"""Authentication gate and session cookie handling for resolvers."""
import logging

from forum.api.context import ForumContext
from forum.config import settings
from forum.errors import Unauthorized
from forum.store import store

logger = logging.getLogger(__name__)


def require_auth(context: ForumContext) -> int:
    """
    Return the caller's user id, or raise ``Unauthorized``.

    Call this first thing in every resolver that needs a logged-in actor.
    """
    if context.user_id is None:
        raise Unauthorized()
    return context.user_id


async def start_session(context: ForumContext, user_id: int) -> None:
    """Log *user_id* in: new server-side session plus the session cookie."""
    if context.session_id:
        await store.destroy_session(context.session_id)
    session_id = await store.create_session(user_id)
    context.response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=settings.SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    context.session_id = session_id
    context.user_id = user_id
    logger.info("User %s logged in", user_id)


async def end_session(context: ForumContext) -> None:
    if context.session_id:
        await store.destroy_session(context.session_id)
    context.response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    if context.user_id is not None:
        logger.info("User %s logged out", context.user_id)
    context.session_id = None
    context.user_id = None
