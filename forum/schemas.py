from pydantic import BaseModel, ConfigDict

from forum.models import Post, User


# --- Validation ---

class FieldError(BaseModel):
    field: str
    message: str


# --- User ---

class UsernamePasswordInput(BaseModel):
    username: str
    email: str
    password: str


class UserResult(BaseModel):
    """Outcome of register / login / changePassword: field errors or a user."""

    errors: list[FieldError] | None = None
    user: User | None = None
    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def error(cls, field: str, message: str) -> "UserResult":
        return cls(errors=[FieldError(field=field, message=message)])


# --- Post ---

class PostInput(BaseModel):
    title: str
    text: str


# --- Pagination ---

class PostPage(BaseModel):
    posts: list[Post]
    has_more: bool
    model_config = ConfigDict(arbitrary_types_allowed=True)
