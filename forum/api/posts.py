import logging
from typing import Optional

import strawberry
from strawberry.types import Info

from forum.api.auth import require_auth
from forum.api.types import PaginatedPosts, PostInputType, PostType
from forum.errors import Forbidden, NotFound
from forum.schemas import PostInput
from forum.services import post_service, vote_service

logger = logging.getLogger(__name__)


@strawberry.type
class PostQuery:
    @strawberry.field
    async def posts(self, info: Info, limit: int, cursor: Optional[str] = None) -> PaginatedPosts:
        async with info.context.db_lock:
            page = await post_service.list_posts(info.context.db, limit, cursor)
        return PaginatedPosts.from_page(page)

    @strawberry.field
    async def post(self, info: Info, id: int) -> Optional[PostType]:
        async with info.context.db_lock:
            post = await post_service.get_post(info.context.db, id)
        return PostType.from_model(post) if post else None


@strawberry.type
class PostMutation:
    @strawberry.mutation
    async def vote(self, info: Info, post_id: int, value: int) -> bool:
        user_id = require_auth(info.context)
        try:
            await vote_service.apply_vote(info.context.db, post_id, user_id, value)
        except NotFound:
            logger.info("Vote by user %s on missing post %s", user_id, post_id)
            return False
        return True

    @strawberry.mutation
    async def create_post(self, info: Info, input: PostInputType) -> PostType:
        user_id = require_auth(info.context)
        post = await post_service.create_post(info.context.db, input.to_schema(), user_id)
        return PostType.from_model(post)

    @strawberry.mutation
    async def update_post(
        self, info: Info, id: int, title: str, text: str
    ) -> Optional[PostType]:
        user_id = require_auth(info.context)
        try:
            post = await post_service.update_post(
                info.context.db, id, PostInput(title=title, text=text), user_id
            )
        except (NotFound, Forbidden) as exc:
            logger.info("Update of post %s refused: %s", id, exc)
            return None
        return PostType.from_model(post)

    @strawberry.mutation
    async def delete_post(self, info: Info, id: int) -> bool:
        user_id = require_auth(info.context)
        try:
            await post_service.delete_post(info.context.db, id, user_id)
        except (NotFound, Forbidden) as exc:
            logger.info("Delete of post %s refused: %s", id, exc)
            return False
        return True
