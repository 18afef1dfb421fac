"""
User service: account creation and public profiles.

Passwords are hashed by the model's pre-save hook, never here, and no
serialiser in this module includes the password column.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import load_only, selectinload

from app.models import Post, RegisterType, User
from app.schemas import SignupRequest


def user_to_dict(user: User) -> dict:
    """Sanitised user: identity fields only."""
    return {
        "_id": user.id,
        "username": user.username,
        "email": user.email,
        "isAdmin": user.is_admin,
        "registerType": user.register_type,
    }


async def create_user(db: AsyncSession, data: SignupRequest) -> dict:
    """
    Create a password account.

    Email uniqueness is enforced by the database; the resulting
    ``IntegrityError`` propagates and the router maps it to a 400.
    """
    user = User(
        username=data.username,
        email=data.email,
        password=data.password,
        register_type=RegisterType.NORMAL.value,
    )
    db.add(user)
    await db.flush()
    return user_to_dict(user)


async def get_user(db: AsyncSession, user_id: int) -> dict | None:
    """Return the public profile of *user_id*, with the ids of their posts."""
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.posts).load_only(Post.id))
        # The principal may already sit in the session with an unloaded list.
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        return None

    data = user_to_dict(user)
    data["posts"] = [p.id for p in user.posts]
    return data
