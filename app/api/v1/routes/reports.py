# app/api/v1/routes/reports.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from app.core.database import get_async_session
from app.core.auth import User
from app.core.owner import Owner
from app.api.deps import get_current_user, get_workspace_owner
from app.schemas.report import MonthOption, ReportRead, ReportStatus
from app.services import reports as report_service

router = APIRouter(prefix="/reports", tags=["Reports"])

@router.get("", response_model=List[ReportRead])
async def read_reports(
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    return await report_service.list_reports(owner, db)

@router.get("/months", response_model=List[MonthOption])
async def read_months(
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    return await report_service.months_with_transactions(owner, db)

@router.get("/status", response_model=ReportStatus)
async def read_report_status(
    month_year: str = Query(..., description="YYYY-MM"),
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    return await report_service.get_report_status(owner, month_year, db)

@router.post("/generate", response_model=ReportRead)
async def generate_report(
    month_year: str = Query(..., description="YYYY-MM"),
    force: bool = Query(False, description="Regenerate even when the cached report is current"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
    owner: Owner = Depends(get_workspace_owner),
):
    return await report_service.get_or_generate_report(owner, month_year, db, force=force, requested_by=user.id)

@router.get("/{report_id}", response_model=ReportRead)
async def read_report(
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    owner: Owner = Depends(get_workspace_owner),
):
    return await report_service.get_report(report_id, owner, db)
