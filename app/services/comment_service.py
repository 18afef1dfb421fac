"""
Comment service: comments scoped to a parent post.

Every lookup filters on the (comment id, post id) pair, so a comment can
only be reached through the post it belongs to.  Update and delete do
not check who wrote the comment.
"""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.models import Comment, Post, User
from app.schemas import CommentCreate, CommentUpdate, Page
from app.services.post_service import author_to_dict


def comment_to_dict(comment: Comment) -> dict:
    return {
        "_id": comment.id,
        "content": comment.content,
        "post": comment.post_id,
        "author": author_to_dict(comment.author),
        "createdAt": comment.created_at.isoformat() if comment.created_at else None,
        "updatedAt": comment.updated_at.isoformat() if comment.updated_at else None,
    }


async def _get_scoped(db: AsyncSession, post_id: int, comment_id: int) -> Comment | None:
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment_id, Comment.post_id == post_id)
        .options(joinedload(Comment.author))
    )
    return result.unique().scalar_one_or_none()


async def get_comments(
    db: AsyncSession, post_id: int, page: int = 1, page_size: int = 10
) -> Page:
    """Return one page of a post's comments, newest first."""
    total: int = (
        await db.execute(
            select(func.count()).select_from(Comment).where(Comment.post_id == post_id)
        )
    ).scalar_one()

    result = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id)
        .options(joinedload(Comment.author))
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    comments = result.unique().scalars().all()

    return Page(
        data=[comment_to_dict(c) for c in comments],
        total=total,
        page=page,
        page_size=page_size,
    )


async def add_comment(
    db: AsyncSession, post_id: int, author: User, data: CommentCreate
) -> dict | None:
    """
    Append a comment by *author* to the post identified by *post_id*.

    Returns None when the post does not exist.
    """
    post = await db.get(Post, post_id)
    if post is None:
        return None

    comment = Comment(content=data.content, author=author)
    post.comments.append(comment)
    db.add(comment)
    await db.flush()
    return comment_to_dict(comment)


async def update_comment(
    db: AsyncSession, post_id: int, comment_id: int, data: CommentUpdate
) -> dict | None:
    comment = await _get_scoped(db, post_id, comment_id)
    if comment is None:
        return None

    comment.content = data.content
    await db.flush()
    return comment_to_dict(comment)


async def delete_comment(db: AsyncSession, post_id: int, comment_id: int) -> bool:
    """Delete the comment and unlink it from its post."""
    comment = await _get_scoped(db, post_id, comment_id)
    if comment is None:
        return False

    await db.delete(comment)
    await db.flush()
    return True
