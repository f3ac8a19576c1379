from typing import Optional

import strawberry
from strawberry.types import Info

from forum.api.auth import end_session, start_session
from forum.api.types import UserResponse, UserType, UsernamePasswordInputType
from forum.services import user_service


@strawberry.type
class UserQuery:
    @strawberry.field
    async def me(self, info: Info) -> Optional[UserType]:
        # Not logged in
        if info.context.user_id is None:
            return None
        user = await info.context.user_loader.load(info.context.user_id)
        return UserType.from_model(user) if user else None


@strawberry.type
class UserMutation:
    @strawberry.mutation
    async def register(self, info: Info, options: UsernamePasswordInputType) -> UserResponse:
        result = await user_service.register(info.context.db, options.to_schema())
        if result.user is not None:
            await start_session(info.context, result.user.id)
        return UserResponse.from_result(result)

    @strawberry.mutation
    async def login(self, info: Info, username_or_email: str, password: str) -> UserResponse:
        result = await user_service.login(info.context.db, username_or_email, password)
        if result.user is not None:
            await start_session(info.context, result.user.id)
        return UserResponse.from_result(result)

    @strawberry.mutation
    async def logout(self, info: Info) -> bool:
        await end_session(info.context)
        return True

    @strawberry.mutation
    async def forgot_password(self, info: Info, email: str) -> bool:
        return await user_service.forgot_password(info.context.db, email)

    @strawberry.mutation
    async def change_password(self, info: Info, token: str, new_password: str) -> UserResponse:
        result = await user_service.change_password(info.context.db, token, new_password)
        if result.user is not None:
            await start_session(info.context, result.user.id)
        return UserResponse.from_result(result)
