"""
Post lifecycle tests — ownership rules, cascade delete and the GraphQL
post/vote operations.

Service tests commit their setup first because a refused or failed
mutation rolls the session back.
"""
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from forum.errors import Forbidden, NotFound
from forum.models import Post, User, Vote
from forum.schemas import PostInput
from forum.services import post_service, vote_service

REGISTER = """
mutation Register($options: UsernamePasswordInput!) {
  register(options: $options) { errors { field message } user { id username } }
}
"""

LOGIN = """
mutation Login($usernameOrEmail: String!, $password: String!) {
  login(usernameOrEmail: $usernameOrEmail, password: $password) { user { id } }
}
"""

CREATE_POST = """
mutation CreatePost($input: PostInput!) {
  createPost(input: $input) { id title text textSnippet points creatorId }
}
"""

POSTS = """
query Posts($limit: Int!, $cursor: String) {
  posts(limit: $limit, cursor: $cursor) {
    hasMore
    nextCursor
    posts { id title points voteStatus creator { id username } }
  }
}
"""

VOTE = """
mutation Vote($postId: Int!, $value: Int!) { vote(postId: $postId, value: $value) }
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _setup(db: AsyncSession) -> tuple[int, int, int]:
    """Return (post_id, owner_id, stranger_id) with everything committed."""
    owner = User(username="owner", email="owner@example.com", password="x")
    stranger = User(username="stranger", email="stranger@example.com", password="x")
    db.add_all([owner, stranger])
    await db.flush()
    post = Post(title="Original", text="Original text", creator_id=owner.id, points=0)
    db.add(post)
    await db.commit()
    return post.id, owner.id, stranger.id


async def _row(db: AsyncSession, post_id: int):
    result = await db.execute(
        select(Post.title, Post.text, Post.points).where(Post.id == post_id)
    )
    return result.one_or_none()


async def _count_votes(db: AsyncSession, post_id: int) -> int:
    return await db.scalar(select(func.count()).select_from(Vote).where(Vote.post_id == post_id))


async def _sign_up(gql, username: str) -> int:
    body = await gql(
        REGISTER,
        options={"username": username, "email": f"{username}@example.com", "password": "secret"},
    )
    return int(body["data"]["register"]["user"]["id"])


# ---------------------------------------------------------------------------
# post_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_post_starts_at_zero_points(db_session: AsyncSession):
    user = User(username="creator", email="creator@example.com", password="x")
    db_session.add(user)
    await db_session.commit()

    post = await post_service.create_post(db_session, PostInput(title="Hello", text="World"), user.id)

    assert post.id is not None
    assert post.points == 0
    assert post.creator_id == user.id
    assert await _row(db_session, post.id) == ("Hello", "World", 0)


@pytest.mark.asyncio
async def test_get_post(db_session: AsyncSession):
    post_id, _, _ = await _setup(db_session)
    assert (await post_service.get_post(db_session, post_id)).title == "Original"
    assert await post_service.get_post(db_session, 99999) is None


@pytest.mark.asyncio
async def test_update_post_by_owner_keeps_points(db_session: AsyncSession):
    post_id, owner_id, stranger_id = await _setup(db_session)
    await vote_service.apply_vote(db_session, post_id, stranger_id, 1)

    updated = await post_service.update_post(
        db_session, post_id, PostInput(title="New", text="New text"), owner_id
    )

    assert updated.title == "New"
    assert await _row(db_session, post_id) == ("New", "New text", 1)


@pytest.mark.asyncio
async def test_update_post_by_stranger_is_forbidden(db_session: AsyncSession):
    post_id, _, stranger_id = await _setup(db_session)

    with pytest.raises(Forbidden):
        await post_service.update_post(
            db_session, post_id, PostInput(title="Hijack", text="Hijack"), stranger_id
        )

    assert await _row(db_session, post_id) == ("Original", "Original text", 0)


@pytest.mark.asyncio
async def test_update_missing_post(db_session: AsyncSession):
    _, owner_id, _ = await _setup(db_session)
    with pytest.raises(NotFound):
        await post_service.update_post(db_session, 99999, PostInput(title="x", text="y"), owner_id)


@pytest.mark.asyncio
async def test_delete_post_removes_votes(db_session: AsyncSession):
    post_id, owner_id, stranger_id = await _setup(db_session)
    await vote_service.apply_vote(db_session, post_id, owner_id, 1)
    await vote_service.apply_vote(db_session, post_id, stranger_id, -1)
    assert await _count_votes(db_session, post_id) == 2

    await post_service.delete_post(db_session, post_id, owner_id)

    assert await _row(db_session, post_id) is None
    assert await _count_votes(db_session, post_id) == 0


@pytest.mark.asyncio
async def test_delete_post_by_stranger_is_forbidden(db_session: AsyncSession):
    post_id, owner_id, stranger_id = await _setup(db_session)
    await vote_service.apply_vote(db_session, post_id, owner_id, 1)

    with pytest.raises(Forbidden):
        await post_service.delete_post(db_session, post_id, stranger_id)

    assert await _row(db_session, post_id) == ("Original", "Original text", 1)
    assert await _count_votes(db_session, post_id) == 1


@pytest.mark.asyncio
async def test_delete_missing_post(db_session: AsyncSession):
    _, owner_id, _ = await _setup(db_session)
    with pytest.raises(NotFound):
        await post_service.delete_post(db_session, 99999, owner_id)


@pytest.mark.asyncio
async def test_failed_delete_keeps_post_and_votes(db_session: AsyncSession, monkeypatch):
    """A failure after the votes are deleted must restore them with the post."""
    post_id, owner_id, stranger_id = await _setup(db_session)
    await vote_service.apply_vote(db_session, post_id, owner_id, 1)
    await vote_service.apply_vote(db_session, post_id, stranger_id, 1)

    real_delete = post_service.delete

    def _delete_failing_on_post(entity):
        if entity is Post:
            raise RuntimeError("storage failure")
        return real_delete(entity)

    monkeypatch.setattr(post_service, "delete", _delete_failing_on_post)

    with pytest.raises(RuntimeError):
        await post_service.delete_post(db_session, post_id, owner_id)

    assert await _row(db_session, post_id) == ("Original", "Original text", 2)
    assert await _count_votes(db_session, post_id) == 2


# ---------------------------------------------------------------------------
# GraphQL: authentication gate
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_mutations_require_login(gql):
    attempts = [
        (CREATE_POST, {"input": {"title": "t", "text": "x"}}),
        (VOTE, {"postId": 1, "value": 1}),
        ("mutation { updatePost(id: 1, title: \"t\", text: \"x\") { id } }", {}),
        ("mutation { deletePost(id: 1) }", {}),
    ]
    for query, variables in attempts:
        body = await gql(query, **variables)
        assert body["errors"][0]["message"] == "not authenticated"


@pytest.mark.asyncio
async def test_vote_on_missing_post_checks_auth_first(gql):
    body = await gql(VOTE, postId=99999, value=1)
    assert body["errors"][0]["message"] == "not authenticated"

    await _sign_up(gql, "voter")
    body = await gql(VOTE, postId=99999, value=1)
    assert "errors" not in body
    assert body["data"]["vote"] is False


# ---------------------------------------------------------------------------
# GraphQL: posts, votes and field resolvers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_post_and_fetch(gql):
    user_id = await _sign_up(gql, "author")

    body = await gql(CREATE_POST, input={"title": "Hello", "text": "x" * 80})
    post = body["data"]["createPost"]
    assert post["title"] == "Hello"
    assert post["points"] == 0
    assert post["creatorId"] == user_id
    assert post["textSnippet"] == "x" * 50

    body = await gql("query Post($id: Int!) { post(id: $id) { id title creator { username } } }", id=post["id"])
    assert body["data"]["post"] == {"id": post["id"], "title": "Hello", "creator": {"username": "author"}}

    body = await gql("query { post(id: 99999) { id } }")
    assert body["data"]["post"] is None


@pytest.mark.asyncio
async def test_vote_status_follows_the_caller(gql):
    await _sign_up(gql, "author")
    post_id = (await gql(CREATE_POST, input={"title": "Vote me", "text": "x"}))["data"]["createPost"]["id"]

    assert (await gql(VOTE, postId=post_id, value=10))["data"]["vote"] is True
    page = (await gql(POSTS, limit=10))["data"]["posts"]
    assert page["posts"][0]["points"] == 1
    assert page["posts"][0]["voteStatus"] == 1

    # Flip.
    assert (await gql(VOTE, postId=post_id, value=-1))["data"]["vote"] is True
    page = (await gql(POSTS, limit=10))["data"]["posts"]
    assert page["posts"][0]["points"] == -1
    assert page["posts"][0]["voteStatus"] == -1

    # Anonymous callers see the points but have no vote of their own.
    await gql("mutation { logout }")
    page = (await gql(POSTS, limit=10))["data"]["posts"]
    assert page["posts"][0]["points"] == -1
    assert page["posts"][0]["voteStatus"] is None


@pytest.mark.asyncio
async def test_posts_pagination_over_graphql(gql):
    await _sign_up(gql, "author")
    titles = [f"Post {i}" for i in range(5)]
    for title in titles:
        await gql(CREATE_POST, input={"title": title, "text": "x"})

    seen = []
    cursor = None
    has_more = True
    while has_more:
        page = (await gql(POSTS, limit=2, cursor=cursor))["data"]["posts"]
        seen.extend(p["title"] for p in page["posts"])
        has_more = page["hasMore"]
        cursor = page["nextCursor"]

    assert seen == list(reversed(titles))


@pytest.mark.asyncio
async def test_invalid_cursor_is_reported(gql):
    body = await gql(POSTS, limit=2, cursor="garbage")
    assert body["errors"][0]["message"] == "invalid cursor"


@pytest.mark.asyncio
async def test_update_and_delete_respect_ownership(gql, async_client):
    await _sign_up(gql, "owner")
    post_id = (await gql(CREATE_POST, input={"title": "Mine", "text": "x"}))["data"]["createPost"]["id"]
    await gql("mutation { logout }")

    await _sign_up(gql, "intruder")
    body = await gql(
        "mutation U($id: Int!) { updatePost(id: $id, title: \"Stolen\", text: \"y\") { id } }", id=post_id
    )
    assert body["data"]["updatePost"] is None
    body = await gql("mutation D($id: Int!) { deletePost(id: $id) }", id=post_id)
    assert body["data"]["deletePost"] is False

    await gql("mutation { logout }")
    await gql(LOGIN, usernameOrEmail="owner", password="secret")
    body = await gql(
        "mutation U($id: Int!) { updatePost(id: $id, title: \"Edited\", text: \"z\") { id title text } }",
        id=post_id,
    )
    assert body["data"]["updatePost"] == {"id": post_id, "title": "Edited", "text": "z"}
    body = await gql("mutation D($id: Int!) { deletePost(id: $id) }", id=post_id)
    assert body["data"]["deletePost"] is True
    body = await gql("mutation D($id: Int!) { deletePost(id: $id) }", id=post_id)
    assert body["data"]["deletePost"] is False
