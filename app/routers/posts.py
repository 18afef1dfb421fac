from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import PostPaginationParams, require_post_owner, require_user
from app.errors import NotFound
from app.models import User
from app.schemas import Page, PostCreate, PostUpdate
from app.services import post_service

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("", response_model=Page)
async def list_posts(
    params: PostPaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.get_posts(db, params.keyword, params.page, params.page_size)


@router.get("/{post_id}")
async def get_post(
    post_id: int,
    db: AsyncSession = Depends(get_db),
):
    post = await post_service.get_post(db, post_id)
    if not post:
        raise NotFound("Post not found")
    return post


@router.post("", status_code=201)
async def create_post(
    data: PostCreate,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.create_post(db, user, data)


@router.put("/{post_id}")
async def update_post(
    data: PostUpdate,
    post_id: int,
    user: User = Depends(require_post_owner),
    db: AsyncSession = Depends(get_db),
):
    post = await post_service.update_post(db, post_id, user, data)
    if not post:
        raise NotFound("Post not found or you are not authorized to update this post")
    return post


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: int,
    user: User = Depends(require_post_owner),
    db: AsyncSession = Depends(get_db),
):
    deleted = await post_service.delete_post(db, post_id, user)
    if not deleted:
        raise NotFound("Post not found or you are not authorized to delete this post")
    return Response(status_code=204)
