import logging

import strawberry
from graphql import GraphQLError
from strawberry.extensions import MaskErrors
from strawberry.tools import merge_types

from forum.api.posts import PostMutation, PostQuery
from forum.api.users import UserMutation, UserQuery
from forum.errors import ForumError

logger = logging.getLogger(__name__)


def _should_mask_error(error: GraphQLError) -> bool:
    # Query syntax/validation errors carry no original error and are safe to show.
    original = error.original_error
    return original is not None and not isinstance(original, ForumError)


class ForumSchema(strawberry.Schema):
    def process_errors(self, errors, execution_context=None) -> None:
        for error in errors:
            original = error.original_error
            if isinstance(original, ForumError):
                logger.info("GraphQL %s at %s: %s", type(original).__name__, error.path, error.message)
            else:
                logger.error("GraphQL error at %s: %s", error.path, error.message, exc_info=original)


Query = merge_types("Query", (PostQuery, UserQuery))
Mutation = merge_types("Mutation", (PostMutation, UserMutation))

schema = ForumSchema(
    query=Query,
    mutation=Mutation,
    extensions=[lambda: MaskErrors(should_mask_error=_should_mask_error)],
)
