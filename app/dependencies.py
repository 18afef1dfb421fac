from fastapi import Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.errors import NotAuthenticated, NotAuthorized, NotFound
from app.models import Post, User
from app.services.auth_service import token_strategy

# Routes that must work with a stale cookie: the OAuth callback carries no
# session yet, and logout is how a client drops a cookie that no longer verifies.
GOOGLE_CALLBACK_PATH = "/auth/login/google/callback"
LOGOUT_PATH = "/auth/logout"
UNAUTHENTICATED_PATHS = frozenset({GOOGLE_CALLBACK_PATH, LOGOUT_PATH})


# ---------------------------------------------------------------------------
# Principal resolution
# ---------------------------------------------------------------------------

async def get_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """
    Resolve the request's principal from the token cookie.

    Installed app-wide, so it runs once per request and handlers receive
    the cached value by depending on it again.  No cookie means an
    anonymous request; a cookie that fails verification is a 401 for
    every route except the OAuth callback and logout.
    """
    if request.url.path in UNAUTHENTICATED_PATHS:
        return None
    token = request.cookies.get(settings.TOKEN_COOKIE_NAME)
    if not token:
        return None
    return await token_strategy.authenticate(db, token)


async def require_user(principal: User | None = Depends(get_principal)) -> User:
    if principal is None:
        raise NotAuthenticated()
    return principal


async def require_post_owner(
    post_id: int,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Allow the request only when *user* authored the target post.

    Loads the post itself; the handler performs its own read afterwards.
    """
    result = await db.execute(select(Post.user_id).where(Post.id == post_id))
    author_id = result.scalar_one_or_none()
    if author_id is None:
        raise NotFound("Post not found")
    if author_id != user.id:
        raise NotAuthorized()
    return user


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class PostPaginationParams:
    """
    Query parameters for the post listing.

    ``page`` and ``pageSize`` have no defaults.  Without both no offset
    is applied, without ``pageSize`` no limit is applied, and a missing
    value is echoed back as null.
    """

    def __init__(
        self,
        keyword: str | None = Query(
            None,
            description="Case-insensitive substring matched against title or content.",
        ),
        page: int | None = Query(None, ge=1, description="Page number (1-based)."),
        page_size: int | None = Query(
            None, ge=1, alias="pageSize", description="Number of posts per page."
        ),
    ) -> None:
        self.keyword = keyword or None
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int | None:
        if self.page is None or self.page_size is None:
            return None
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int | None:
        return self.page_size


class CommentPaginationParams:
    """Query parameters for a post's comment listing (defaults to page 1)."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: int = Query(
            settings.COMMENT_DEFAULT_PAGE_SIZE,
            ge=1,
            alias="pageSize",
            description="Number of comments per page.",
        ),
    ) -> None:
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size
