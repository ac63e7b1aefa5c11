import enum
import uuid
from sqlalchemy import Column, String, ForeignKey, Boolean, DateTime, Enum, Uuid
from app.core.database import Base
from app.utils.dates import utcnow

class NotificationType(str, enum.Enum):
    vault_invite = "vault_invite"
    goal_invite = "goal_invite"
    vault_member_added = "vault_member_added"
    goal_completed = "goal_completed"
    report_ready = "report_ready"

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(NotificationType), nullable=False)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    link = Column(String, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
