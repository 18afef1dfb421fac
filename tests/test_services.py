"""
Direct service-layer tests: exercises the authentication strategies,
the password hook and the post/comment services without HTTP overhead.
"""
import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import InvalidCredentials, InvalidToken, NoToken, ServerError, UnknownSubject
from app.models import Comment, User
from app.schemas import CommentCreate, FederatedIdentity, PostCreate, PostUpdate, SignupRequest
from app.security import create_token, verify_password
from app.services import comment_service, post_service, user_service
from app.services.auth_service import google_strategy, password_strategy, token_strategy


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _create_user(
    db: AsyncSession, username: str = "svcuser", password: str | None = "svc-pass"
) -> User:
    user = User(username=username, email=f"{username}@example.com", password=password)
    db.add(user)
    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Password hook
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_password_hashed_on_insert(db_session: AsyncSession):
    user = await _create_user(db_session)
    assert user.password != "svc-pass"
    assert verify_password("svc-pass", user.password)


@pytest.mark.asyncio
async def test_password_rehashed_only_when_changed(db_session: AsyncSession):
    user = await _create_user(db_session)
    original_hash = user.password

    user.username = "renamed"
    await db_session.flush()
    assert user.password == original_hash

    user.password = "new-pass"
    await db_session.flush()
    assert user.password != "new-pass"
    assert verify_password("new-pass", user.password)
    assert not verify_password("svc-pass", user.password)


@pytest.mark.asyncio
async def test_user_without_password_stays_null(db_session: AsyncSession):
    user = await _create_user(db_session, "passwordless", password=None)
    assert user.password is None


@pytest.mark.asyncio
async def test_duplicate_email_raises_integrity_error(db_session: AsyncSession):
    data = SignupRequest(username="a", email="same@example.com", password="pw")
    await user_service.create_user(db_session, data)
    with pytest.raises(IntegrityError):
        await user_service.create_user(db_session, data)


# ---------------------------------------------------------------------------
# Password strategy
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_password_strategy_success(db_session: AsyncSession):
    user = await _create_user(db_session)
    found = await password_strategy.authenticate(db_session, (user.email, "svc-pass"))
    assert found.id == user.id


@pytest.mark.asyncio
async def test_password_strategy_wrong_password(db_session: AsyncSession):
    user = await _create_user(db_session)
    with pytest.raises(InvalidCredentials):
        await password_strategy.authenticate(db_session, (user.email, "nope"))


@pytest.mark.asyncio
async def test_password_strategy_unknown_email(db_session: AsyncSession):
    with pytest.raises(InvalidCredentials):
        await password_strategy.authenticate(db_session, ("ghost@example.com", "x"))


# ---------------------------------------------------------------------------
# Token strategy
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_token_strategy_success(db_session: AsyncSession):
    user = await _create_user(db_session)
    found = await token_strategy.authenticate(db_session, create_token(user.id))
    assert found.id == user.id


@pytest.mark.asyncio
async def test_token_strategy_no_token(db_session: AsyncSession):
    with pytest.raises(NoToken):
        await token_strategy.authenticate(db_session, None)


@pytest.mark.asyncio
async def test_token_strategy_garbage(db_session: AsyncSession):
    with pytest.raises(InvalidToken):
        await token_strategy.authenticate(db_session, "a.b.c")


@pytest.mark.asyncio
async def test_token_strategy_unknown_subject(db_session: AsyncSession):
    with pytest.raises(UnknownSubject):
        await token_strategy.authenticate(db_session, create_token(424242))


# ---------------------------------------------------------------------------
# Federated strategy
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_federated_strategy_upserts(db_session: AsyncSession):
    identity = FederatedIdentity(subject="sub-123", email="fed@gmail.com", name="Fed")

    first = await google_strategy.authenticate(db_session, identity)
    second = await google_strategy.authenticate(db_session, identity)
    assert first.id == second.id
    assert first.register_type == "google"
    assert first.social_id == "sub-123"
    assert first.password is None

    count = (await db_session.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_federated_strategy_distinct_subjects(db_session: AsyncSession):
    a = await google_strategy.authenticate(
        db_session, FederatedIdentity(subject="s-a", email="a@gmail.com", name="A")
    )
    b = await google_strategy.authenticate(
        db_session, FederatedIdentity(subject="s-b", email="b@gmail.com", name="B")
    )
    assert a.id != b.id


@pytest.mark.asyncio
async def test_federated_email_collision_is_server_error(db_session: AsyncSession):
    await _create_user(db_session, "taken")
    identity = FederatedIdentity(subject="s-taken", email="taken@example.com", name="Taken")

    with pytest.raises(ServerError) as exc_info:
        await google_strategy.authenticate(db_session, identity)
    assert exc_info.value.status_code == 500

    count = (await db_session.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 1


def test_federated_identity_requires_email():
    with pytest.raises(ValidationError):
        FederatedIdentity(subject="s-empty", email="", name="Nobody")


# ---------------------------------------------------------------------------
# post_service / comment_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_posts_empty(db_session: AsyncSession):
    page = await post_service.get_posts(db_session, page=1, page_size=5)
    assert page.total == 0
    assert page.data == []


@pytest.mark.asyncio
async def test_post_lifecycle_via_service(db_session: AsyncSession):
    author = await _create_user(db_session)
    created = await post_service.create_post(
        db_session, author, PostCreate(title="Svc", content="Body")
    )
    assert created["author"]["_id"] == author.id

    updated = await post_service.update_post(
        db_session, created["_id"], author, PostUpdate(content="New body")
    )
    assert updated["title"] == "Svc"
    assert updated["content"] == "New body"

    assert await post_service.delete_post(db_session, created["_id"], author) is True
    assert await post_service.get_post(db_session, created["_id"]) is None


@pytest.mark.asyncio
async def test_update_post_filters_on_author(db_session: AsyncSession):
    author = await _create_user(db_session, "realauthor")
    other = await _create_user(db_session, "notauthor")
    created = await post_service.create_post(
        db_session, author, PostCreate(title="T", content="C")
    )
    result = await post_service.update_post(
        db_session, created["_id"], other, PostUpdate(title="X")
    )
    assert result is None
    assert await post_service.delete_post(db_session, created["_id"], other) is False


@pytest.mark.asyncio
async def test_keyword_search_is_case_insensitive(db_session: AsyncSession):
    author = await _create_user(db_session)
    await post_service.create_post(db_session, author, PostCreate(title="FastAPI tips", content="x"))
    await post_service.create_post(db_session, author, PostCreate(title="Other", content="y"))

    page = await post_service.get_posts(db_session, keyword="fastapi", page=1, page_size=10)
    assert page.total == 1
    assert page.data[0]["title"] == "FastAPI tips"


@pytest.mark.asyncio
async def test_comment_lifecycle_via_service(db_session: AsyncSession):
    author = await _create_user(db_session)
    post = await post_service.create_post(db_session, author, PostCreate(title="T", content="C"))

    comment = await comment_service.add_comment(
        db_session, post["_id"], author, CommentCreate(content="first")
    )
    assert comment["post"] == post["_id"]

    page = await comment_service.get_comments(db_session, post["_id"])
    assert page.total == 1
    assert page.page_size == 10

    assert await comment_service.delete_comment(db_session, post["_id"], comment["_id"]) is True
    remaining = (
        await db_session.execute(select(func.count()).select_from(Comment))
    ).scalar_one()
    assert remaining == 0


@pytest.mark.asyncio
async def test_add_comment_to_missing_post_via_service(db_session: AsyncSession):
    author = await _create_user(db_session)
    result = await comment_service.add_comment(
        db_session, 9999, author, CommentCreate(content="orphan")
    )
    assert result is None


@pytest.mark.asyncio
async def test_keyword_escapes_like_wildcards(db_session: AsyncSession):
    author = await _create_user(db_session)
    await post_service.create_post(db_session, author, PostCreate(title="100% done", content="x"))
    await post_service.create_post(db_session, author, PostCreate(title="1000 steps", content="y"))

    page = await post_service.get_posts(db_session, keyword="0%", page=None, page_size=None)
    assert page.total == 1
    assert page.data[0]["title"] == "100% done"


# ---------------------------------------------------------------------------
# user_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_profile_lists_posts_when_user_already_in_session(db_session: AsyncSession):
    author = await _create_user(db_session, "insession")
    author_id = author.id
    post = await post_service.create_post(db_session, author, PostCreate(title="Mine", content="c"))
    db_session.expunge_all()

    # Loaded the way the request principal is, with the post list unloaded.
    principal = await token_strategy.authenticate(db_session, create_token(author_id))
    assert principal.posts == []

    profile = await user_service.get_user(db_session, author_id)
    assert profile["posts"] == [post["_id"]]
