# app/api/v1/routes/auth.py
from datetime import timedelta
from fastapi import APIRouter, Depends, Response, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session
from app.core.auth import UserCreate, UserRead, authenticate, register_user
from app.core.config import settings
from app.core.security import create_access_token
from app.schemas.user import LoginRequest, Token

router = APIRouter(tags=["Authentication"])

@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(user_in: UserCreate, db: AsyncSession = Depends(get_async_session)):
    """Create an account on a fresh trial; pending invitations to the email are attached."""
    return await register_user(user_in, db)

@router.post("/jwt/login", response_model=Token)
async def login(credentials: LoginRequest, response: Response, db: AsyncSession = Depends(get_async_session)):
    user = await authenticate(credentials.email, credentials.password, db)
    if user is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="LOGIN_BAD_CREDENTIALS")

    expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    token = create_access_token(str(user.id), timedelta(seconds=expires_in))
    response.set_cookie(
        key="access_token",
        value=f"Bearer {token}",
        httponly=True,
        max_age=expires_in,
        samesite="lax",
        secure=settings.ENVIRONMENT == "production",
    )
    return Token(access_token=token, token_type="bearer", expires_in=expires_in)

# Match the exact path that the frontend is calling
@router.post("/jwt/logout", status_code=status.HTTP_200_OK)
async def logout(response: Response):
    """
    Logout endpoint that doesn't require authentication.
    This endpoint will clear the access token cookie if present.
    """
    response.delete_cookie(key="access_token")
    return {"detail": "Successfully logged out"}
