from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_principal
from app.errors import NotAuthenticated, NotFound
from app.models import User
from app.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/current_user")
async def current_user(principal: User | None = Depends(get_principal)):
    if principal is None:
        raise NotAuthenticated("No authenticated user.")
    return {"user": user_service.user_to_dict(principal)}


@router.get("/{user_id}")
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await user_service.get_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    return user
