# app/services/reports.py
"""
Monthly analysis reports, cached per (owner, month).

A stored report is current until a transaction of that owner and month is
created or modified after the report's ``created_at``. A vault's month also
covers members' movements into its shared goals, as the vault listing
does. Deleting a transaction, or moving it to another month, leaves no
timestamp behind, so those paths flag the month's reports with
``invalidated_at`` instead. Either way a report never becomes current again;
only a new row is.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ReportNotFound, ValidationError
from app.core.owner import Owner
from app.crud import report as report_crud
from app.crud import transaction as transaction_crud
from app.models.notification import NotificationType
from app.models.report import Report
from app.services.ledger import shared_goal_ids
from app.utils.analysis import generate_analysis_html
from app.utils.dates import month_bounds, month_key, month_label, parse_month_key, utcnow
from app.utils.notifications import emit_event

logger = logging.getLogger(__name__)

LABEL_GENERATE = "Generate"
LABEL_VIEW = "View"
LABEL_REFRESH = "Refresh"


def _check_month(month_year: str) -> None:
    try:
        parse_month_key(month_year)
    except ValueError as e:
        raise ValidationError(str(e), field="month_year")


async def is_report_stale(report: Report, db: AsyncSession) -> bool:
    if report.invalidated_at is not None:
        return True
    start, end = month_bounds(report.month_year)
    latest_change = await transaction_crud.latest_change_in_range(
        report.owner, start, end, db, extra_goal_ids=await shared_goal_ids(report.owner, db)
    )
    return latest_change is not None and latest_change > report.created_at


async def get_report_status(owner: Owner, month_year: str, db: AsyncSession) -> Dict:
    _check_month(month_year)
    report = await report_crud.get_latest_report(owner, month_year, db)
    if report is None:
        return {"month_year": month_year, "exists": False, "is_outdated": False, "label": LABEL_GENERATE}

    outdated = await is_report_stale(report, db)
    return {
        "month_year": month_year,
        "exists": True,
        "is_outdated": outdated,
        "label": LABEL_REFRESH if outdated else LABEL_VIEW,
        "report_id": report.id,
        "created_at": report.created_at,
    }


async def get_or_generate_report(
    owner: Owner,
    month_year: str,
    db: AsyncSession,
    force: bool = False,
    requested_by: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> Report:
    """Serve the cached report when it is current; otherwise generate and store a new one."""
    _check_month(month_year)
    if not force:
        cached = await report_crud.get_latest_report(owner, month_year, db)
        if cached is not None and not await is_report_stale(cached, db):
            logger.info(f"Serving cached report {cached.id} for {owner} {month_year}")
            return cached

    # Stamp the report with the time its data was read, so a transaction
    # written while the analysis runs still makes it stale.
    snapshot_at = now or utcnow()
    start, end = month_bounds(month_year)
    transactions = await transaction_crud.get_transactions_for_owner(
        owner, db, start, end, extra_goal_ids=await shared_goal_ids(owner, db)
    )
    analysis_html = await generate_analysis_html(month_label(month_year), transactions)

    report = await report_crud.create_report(owner, month_year, analysis_html, db, created_at=snapshot_at)
    logger.info(f"Generated report {report.id} for {owner} {month_year} from {len(transactions)} transaction(s)")

    if requested_by is not None:
        await emit_event(
            db,
            [requested_by],
            NotificationType.report_ready,
            title="Relatório pronto",
            message=f"A análise de {month_label(month_year)} está disponível.",
            link=f"/reports?month={month_year}",
        )
    return report


async def get_report(report_id: uuid.UUID, owner: Owner, db: AsyncSession) -> Report:
    report = await report_crud.get_report_by_id(report_id, db)
    if report is None or report.owner != owner:
        raise ReportNotFound("Report not found")
    return report


async def list_reports(owner: Owner, db: AsyncSession) -> List[Report]:
    return await report_crud.get_reports_for_owner(owner, db)


async def cleanup_old_reports(
    db: AsyncSession,
    retention_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> int:
    """Maintenance sweep: drop reports created before the retention window."""
    days = settings.REPORT_RETENTION_DAYS if retention_days is None else retention_days
    cutoff = (now or utcnow()) - timedelta(days=days)
    deleted = await report_crud.delete_reports_older_than(cutoff, db)
    logger.info(f"Removed {deleted} report(s) created before {cutoff}")
    return deleted


async def months_with_transactions(owner: Owner, db: AsyncSession) -> List[Dict[str, str]]:
    """Distinct "YYYY-MM" months with activity, newest first, with pt-BR labels."""
    months = []
    extra_goal_ids = await shared_goal_ids(owner, db)
    for value in await transaction_crud.get_transaction_dates(owner, db, extra_goal_ids):
        key = month_key(value)
        if key not in months:
            months.append(key)
    return [{"value": key, "label": month_label(key)} for key in months]
