"""
Post service: business logic for the Post aggregate.

Design notes
------------
- Authors are expanded to ``{_id, username}`` via ``joinedload``; the
  comment list is loaded as ids only via ``selectinload`` + ``load_only``.
- The list query is built once and reused for COUNT and for the page,
  so ``total`` always reflects the same keyword filter.
- Creating a post appends it to the author's ``posts`` collection and
  deleting removes it; both happen inside the caller's transaction.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, load_only, selectinload

from app.models import Comment, Post, User
from app.schemas import Page, PostCreate, PostUpdate

# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------


def _timestamp(value) -> str | None:
    return value.isoformat() if value else None


def author_to_dict(author: User | None) -> dict | None:
    if author is None:
        return None
    return {"_id": author.id, "username": author.username}


def post_to_dict(post: Post) -> dict:
    """Serialise a Post with its author expanded and comment ids listed."""
    return {
        "_id": post.id,
        "title": post.title,
        "content": post.content,
        "author": author_to_dict(post.author),
        "comments": [c.id for c in post.comments],
        "createdAt": _timestamp(post.created_at),
        "updatedAt": _timestamp(post.updated_at),
    }


def _with_relations(query: Select) -> Select:
    return query.options(
        joinedload(Post.author).load_only(User.id, User.username),
        selectinload(Post.comments).load_only(Comment.id),
    )


def _keyword_filter(keyword: str):
    return or_(
        Post.title.icontains(keyword, autoescape=True),
        Post.content.icontains(keyword, autoescape=True),
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_posts(
    db: AsyncSession,
    keyword: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> Page:
    """
    Return posts newest first, optionally filtered by *keyword*.

    Offset is applied only when both *page* and *page_size* are given,
    limit only when *page_size* is given.
    """
    count_q = select(func.count()).select_from(Post)
    posts_q = select(Post)
    if keyword:
        count_q = count_q.where(_keyword_filter(keyword))
        posts_q = posts_q.where(_keyword_filter(keyword))

    total: int = (await db.execute(count_q)).scalar_one()

    posts_q = _with_relations(posts_q).order_by(Post.created_at.desc(), Post.id.desc())
    if page is not None and page_size is not None:
        posts_q = posts_q.offset((page - 1) * page_size)
    if page_size is not None:
        posts_q = posts_q.limit(page_size)

    result = await db.execute(posts_q)
    posts = result.unique().scalars().all()

    return Page(
        data=[post_to_dict(p) for p in posts],
        total=total,
        page=page,
        page_size=page_size,
    )


async def get_post(db: AsyncSession, post_id: int) -> dict | None:
    result = await db.execute(_with_relations(select(Post).where(Post.id == post_id)))
    post = result.unique().scalar_one_or_none()
    if post is None:
        return None
    return post_to_dict(post)


async def create_post(db: AsyncSession, author: User, data: PostCreate) -> dict:
    """Create a post authored by *author* and link it into their posts."""
    post = Post(title=data.title, content=data.content)
    author.posts.append(post)
    db.add(post)
    await db.flush()
    return post_to_dict(post)


async def update_post(
    db: AsyncSession, post_id: int, author: User, data: PostUpdate
) -> dict | None:
    """
    Update title and/or content of a post owned by *author*.

    Returns None when no post matches both the id and the author.
    """
    result = await db.execute(
        _with_relations(
            select(Post).where(Post.id == post_id, Post.user_id == author.id)
        )
    )
    post = result.unique().scalar_one_or_none()
    if post is None:
        return None

    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(post, field, value)

    await db.flush()
    return post_to_dict(post)


async def delete_post(db: AsyncSession, post_id: int, author: User) -> bool:
    """
    Delete a post owned by *author*, removing it from their posts.

    Returns False when no post matches both the id and the author.
    """
    result = await db.execute(
        select(Post).where(Post.id == post_id, Post.user_id == author.id)
    )
    post = result.scalar_one_or_none()
    if post is None:
        return False

    await db.delete(post)
    await db.flush()
    return True
