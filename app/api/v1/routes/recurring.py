# app/api/v1/routes/recurring.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session
from app.core.owner import Owner
from app.api.deps import get_workspace_owner
from app.schemas.transaction import RecurringOverview
from app.services.installments import recurring_overview

router = APIRouter(prefix="/recurring", tags=["Recurring"])

@router.get("", response_model=RecurringOverview)
async def read_recurring(
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    """Recurring transactions grouped by description, and installment purchases with progress."""
    return await recurring_overview(owner, db)
