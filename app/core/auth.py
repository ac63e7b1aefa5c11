# app/core/auth.py

import enum
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import Boolean, Column, DateTime, Enum, String, Uuid, select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import Base
from .errors import ValidationError
from .security import get_password_hash, verify_password
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


class SubscriptionStatus(str, enum.Enum):
    active = "active"
    trial = "trial"
    inactive = "inactive"


# 1. User DB model
class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(length=120), nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    avatar_url = Column(String, nullable=True)

    # Access gate state; trial expiry is evaluated lazily at request time
    subscription_status = Column(Enum(SubscriptionStatus), default=SubscriptionStatus.trial, nullable=False)
    trial_expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<User email={self.email} status={self.subscription_status}>"


# 2. Pydantic schemas
class UserRead(BaseModel):
    id: uuid.UUID
    name: str
    email: EmailStr
    avatar_url: Optional[str] = None
    subscription_status: SubscriptionStatus
    trial_expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)

class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    avatar_url: Optional[str] = None


# 3. Registration / authentication
async def register_user(user_in: UserCreate, db: AsyncSession, now: Optional[datetime] = None) -> User:
    """
    Create a user on a fresh trial and bind any invitations that were sent to
    their email before they signed up.
    """
    from app.crud.invitation import bind_invitations_to_user

    now = now or utcnow()
    email = user_in.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ValidationError("A user with this email already exists", field="email")

    user = User(
        name=user_in.name.strip(),
        email=email,
        hashed_password=get_password_hash(user_in.password),
        subscription_status=SubscriptionStatus.trial,
        trial_expires_at=now + timedelta(days=settings.TRIAL_DAYS),
    )
    db.add(user)
    await db.flush()
    bound = await bind_invitations_to_user(user, db)
    await db.commit()
    await db.refresh(user)
    logger.info(f"Registered user {user.id} on trial until {user.trial_expires_at} ({bound} invitations bound)")
    return user


async def authenticate(email: str, password: str, db: AsyncSession) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    return user
