# app/api/v1/routes/webhooks.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import secrets
import logging

from app.core.database import get_async_session
from app.core.config import settings
from app.services.access import apply_billing_event

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])
logger = logging.getLogger(__name__)

class BillingCustomer(BaseModel):
    email: str
    full_name: Optional[str] = None

class BillingEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    webhook_event_type: Optional[str] = None
    type: Optional[str] = None
    customer: BillingCustomer = Field(..., alias="Customer")

    @property
    def event(self) -> str:
        return self.webhook_event_type or self.type or ""

@router.post("/billing")
async def billing_webhook(
    payload: BillingEvent,
    token: str = Query(...),
    db: AsyncSession = Depends(get_async_session),
):
    if not settings.BILLING_WEBHOOK_TOKEN or not secrets.compare_digest(token, settings.BILLING_WEBHOOK_TOKEN):
        logger.warning("Billing webhook called with an invalid token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook token")

    user = await apply_billing_event(payload.customer.email, payload.event, db)
    return {
        "received": True,
        "event": payload.event,
        "status": user.subscription_status.value if user else None,
    }
