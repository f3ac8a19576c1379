"""
Expected failures of the forum domain.

Services raise these; the GraphQL layer decides whether the caller sees
them as ``null``/``false`` (``NotFound``, ``Forbidden``) or as an error
with a readable message (``Unauthorized``, ``InvalidCursor``).  Anything
that is not a ``ForumError`` is treated as an internal failure and its
message is masked before it leaves the server.
"""


class ForumError(Exception):
    message = "forum error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class Unauthorized(ForumError):
    message = "not authenticated"


class Forbidden(ForumError):
    message = "not authorized"


class NotFound(ForumError):
    message = "not found"


class InvalidCursor(ForumError):
    message = "invalid cursor"
