# app/utils/notifications.py
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from app.schemas.notification import NotificationCreate
from app.crud.notification import stage_notification
from app.models.notification import Notification, NotificationType
from app.core.config import settings
import uuid
import asyncio
from concurrent.futures import ThreadPoolExecutor
import sendgrid
from sendgrid.helpers.mail import Mail
import logging

logger = logging.getLogger(__name__)

async def send_email_via_sendgrid(to_email: str, subject: str, body: str) -> bool:
    """
    Send an HTML email through SendGrid. Returns False instead of raising so a
    delivery problem never breaks the request that triggered it.
    """
    if not settings.SENDGRID_API_KEY or not settings.EMAIL_FROM:
        logger.info(f"SendGrid not configured, skipping email '{subject}' to {to_email}")
        return False

    if not to_email or "@" not in to_email:
        logger.error(f"Invalid email format: {to_email}")
        return False

    try:
        message = Mail(
            from_email=(settings.EMAIL_FROM, settings.EMAIL_FROM_NAME),
            to_emails=to_email,
            subject=subject,
            html_content=body
        )
        message.reply_to = settings.EMAIL_FROM

        sg = sendgrid.SendGridAPIClient(api_key=settings.SENDGRID_API_KEY)

        # The SendGrid client is blocking
        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor() as executor:
            response = await loop.run_in_executor(executor, sg.send, message)

        if response.status_code == 202:
            logger.info(f"Email '{subject}' sent to {to_email}")
            return True
        logger.error(f"Failed to send email to {to_email}. Status code: {response.status_code}, body: {response.body}")
        return False

    except Exception as e:
        logger.error(f"Exception while sending email to {to_email}: {str(e)}")
        return False

async def emit_event(
    db: AsyncSession,
    user_ids: Iterable[uuid.UUID],
    event_type: NotificationType,
    title: str,
    message: str,
    link: Optional[str] = None,
) -> List[Notification]:
    """
    Store one in-app notification per recipient.

    Runs after the ledger unit of work has committed, in its own commit. A
    failure here is logged and rolled back; the caller's data is already safe.
    """
    recipients = list(dict.fromkeys(user_ids))
    if not recipients:
        return []
    try:
        notifications = [
            stage_notification(
                db,
                NotificationCreate(user_id=user_id, type=event_type, title=title, message=message, link=link),
            )
            for user_id in recipients
        ]
        await db.commit()
        logger.info(f"Emitted {event_type.value} notification to {len(recipients)} user(s)")
        return notifications
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Could not store {event_type.value} notifications: {str(e)}")
        return []

def invitation_email(sender_name: str, target_name: str, kind: str) -> str:
    link = f"{settings.FRONTEND_URL.rstrip('/')}/invitations"
    what = "do cofre" if kind == "vault" else "da caixinha"
    return (
        f"<p>Olá!</p>"
        f"<p><strong>{sender_name}</strong> convidou você para participar {what} "
        f"<strong>{target_name}</strong> no {settings.EMAIL_FROM_NAME}.</p>"
        f'<p><a href="{link}">Ver convite</a></p>'
    )

def goal_completed_email(goal_name: str, current_amount, target_amount) -> str:
    return (
        f"<p>Parabéns! 🎉</p>"
        f"<p>A caixinha <strong>{goal_name}</strong> atingiu a meta: "
        f"R$ {current_amount:.2f} de R$ {target_amount:.2f}.</p>"
    )
