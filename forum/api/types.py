"""GraphQL object and input types."""
from datetime import datetime
from typing import Optional

import strawberry
from strawberry.types import Info

from forum import models, schemas
from forum.pagination import encode_cursor

SNIPPET_LENGTH = 50


@strawberry.type
class FieldError:
    field: str
    message: str


@strawberry.type(name="User")
class UserType:
    id: int
    username: str
    created_at: datetime
    updated_at: datetime
    private_email: strawberry.Private[str]

    @strawberry.field
    def email(self, info: Info) -> str:
        # Only the account owner gets to see the address.
        if info.context.user_id == self.id:
            return self.private_email
        return ""

    @classmethod
    def from_model(cls, user: models.User) -> "UserType":
        return cls(
            id=user.id,
            username=user.username,
            created_at=user.created_at,
            updated_at=user.updated_at,
            private_email=user.email,
        )


@strawberry.type(name="Post")
class PostType:
    id: int
    title: str
    text: str
    points: int
    creator_id: int
    created_at: datetime
    updated_at: datetime

    @strawberry.field
    def text_snippet(self) -> str:
        return self.text[:SNIPPET_LENGTH]

    @strawberry.field
    async def creator(self, info: Info) -> UserType:
        user = await info.context.user_loader.load(self.creator_id)
        return UserType.from_model(user)

    @strawberry.field
    async def vote_status(self, info: Info) -> Optional[int]:
        """The caller's own vote on this post, or null."""
        user_id = info.context.user_id
        if user_id is None:
            return None
        vote = await info.context.vote_loader.load((self.id, user_id))
        return vote.value if vote is not None else None

    @classmethod
    def from_model(cls, post: models.Post) -> "PostType":
        return cls(
            id=post.id,
            title=post.title,
            text=post.text,
            points=post.points,
            creator_id=post.creator_id,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


@strawberry.type
class PaginatedPosts:
    posts: list[PostType]
    has_more: bool
    next_cursor: Optional[str] = None

    @classmethod
    def from_page(cls, page: schemas.PostPage) -> "PaginatedPosts":
        return cls(
            posts=[PostType.from_model(p) for p in page.posts],
            has_more=page.has_more,
            next_cursor=encode_cursor(page.posts[-1]) if page.posts else None,
        )


@strawberry.type
class UserResponse:
    errors: Optional[list[FieldError]] = None
    user: Optional[UserType] = None

    @classmethod
    def from_result(cls, result: schemas.UserResult) -> "UserResponse":
        if result.errors:
            return cls(errors=[FieldError(field=e.field, message=e.message) for e in result.errors])
        return cls(user=UserType.from_model(result.user) if result.user else None)


@strawberry.input(name="PostInput")
class PostInputType:
    title: str
    text: str

    def to_schema(self) -> schemas.PostInput:
        return schemas.PostInput(title=self.title, text=self.text)


@strawberry.input(name="UsernamePasswordInput")
class UsernamePasswordInputType:
    username: str
    email: str
    password: str

    def to_schema(self) -> schemas.UsernamePasswordInput:
        return schemas.UsernamePasswordInput(
            username=self.username, email=self.email, password=self.password
        )
