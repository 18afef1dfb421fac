from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import CommentPaginationParams, require_user
from app.errors import NotFound
from app.models import User
from app.schemas import CommentCreate, CommentUpdate, Page
from app.services import comment_service

router = APIRouter(prefix="/posts/{post_id}/comments", tags=["comments"])

_MISMATCH = "Comment not found or does not belong to this post"


@router.get("", response_model=Page)
async def list_comments(
    post_id: int,
    params: CommentPaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.get_comments(db, post_id, params.page, params.page_size)


@router.post("", status_code=201)
async def add_comment(
    data: CommentCreate,
    post_id: int,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.add_comment(db, post_id, user, data)
    if not comment:
        raise NotFound("Post not found")
    return comment


# No ownership check on update/delete: any caller may edit or remove a
# comment as long as the (comment_id, post_id) pair matches.
@router.put("/{comment_id}")
async def update_comment(
    data: CommentUpdate,
    post_id: int,
    comment_id: int,
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.update_comment(db, post_id, comment_id, data)
    if not comment:
        raise NotFound(_MISMATCH)
    return comment


@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    post_id: int,
    comment_id: int,
    db: AsyncSession = Depends(get_db),
):
    deleted = await comment_service.delete_comment(db, post_id, comment_id)
    if not deleted:
        raise NotFound(_MISMATCH)
    return Response(status_code=204)
