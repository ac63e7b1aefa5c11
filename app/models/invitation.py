# app/models/invitation.py
import enum
import uuid
from sqlalchemy import Column, String, ForeignKey, DateTime, Enum, Uuid
from app.core.database import Base
from app.utils.dates import utcnow

class InvitationType(str, enum.Enum):
    vault = "vault"
    goal = "goal"

class InvitationStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"

class Invitation(Base):
    __tablename__ = "invitations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type = Column(Enum(InvitationType), nullable=False)
    # Vault id or goal id depending on type
    target_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # Set once the invitee is a registered user; until then only the email is known
    receiver_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    receiver_email = Column(String, nullable=False, index=True)
    status = Column(Enum(InvitationStatus), nullable=False, default=InvitationStatus.pending)

    created_at = Column(DateTime, default=utcnow)
    responded_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Invitation {self.type} target={self.target_id} to={self.receiver_email} status={self.status}>"
