# app/api/v1/routes/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session
from app.core.auth import User, UserRead, UserUpdate
from app.api.deps import get_current_user
from app.crud.user import update_user
from app.schemas.user import AccessInfo
from app.services.access import access_info

router = APIRouter()

@router.get("/me", response_model=UserRead)
async def read_me(user: User = Depends(get_current_user)):
    return user

@router.patch("/me", response_model=UserRead)
async def update_me(
    user_in: UserUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await update_user(user, user_in, db)

@router.get("/me/access", response_model=AccessInfo)
async def read_my_access(user: User = Depends(get_current_user)):
    """Subscription state as the access gate sees it right now."""
    return access_info(user)
