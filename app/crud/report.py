# app/crud/report.py
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import delete, desc, update
from app.models.report import Report
from app.core.owner import Owner
from typing import List, Optional
import uuid

async def get_latest_report(owner: Owner, month_year: str, db: AsyncSession) -> Optional[Report]:
    """Most recent row for the (owner, month) key; older rows are history."""
    result = await db.execute(
        select(Report)
        .where(Report.owned_by(owner), Report.month_year == month_year)
        .order_by(desc(Report.created_at))
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()

async def get_reports_for_owner(owner: Owner, db: AsyncSession) -> List[Report]:
    result = await db.execute(
        select(Report).where(Report.owned_by(owner)).order_by(desc(Report.created_at))
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()

async def create_report(owner: Owner, month_year: str, analysis_html: str, db: AsyncSession, created_at: Optional[datetime] = None) -> Report:
    report = Report(month_year=month_year, analysis_html=analysis_html)
    report.set_owner(owner)
    if created_at is not None:
        report.created_at = created_at
    db.add(report)
    await db.commit()
    await db.refresh(report)
    return report

async def invalidate_reports(owner: Owner, month_year: str, when: datetime, db: AsyncSession) -> int:
    """Flag every still-valid report of the key; the caller commits."""
    result = await db.execute(
        update(Report)
        .where(Report.owned_by(owner), Report.month_year == month_year, Report.invalidated_at.is_(None))
        .values(invalidated_at=when)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount

async def delete_reports_older_than(cutoff: datetime, db: AsyncSession) -> int:
    result = await db.execute(delete(Report).where(Report.created_at < cutoff))
    await db.commit()
    return result.rowcount

async def get_report_by_id(report_id: uuid.UUID, db: AsyncSession) -> Optional[Report]:
    result = await db.execute(select(Report).where(Report.id == report_id).execution_options(populate_existing=True))
    return result.scalar_one_or_none()
