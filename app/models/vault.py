# app/models/vault.py
import enum
import uuid
from sqlalchemy import Column, String, ForeignKey, Boolean, DateTime, Enum, Uuid, UniqueConstraint
from app.core.database import Base
from app.utils.dates import utcnow

class VaultRole(str, enum.Enum):
    owner = "owner"
    member = "member"

class Vault(Base):
    __tablename__ = "vaults"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(length=120), nullable=False)
    image_url = Column(String, nullable=True)  # opaque object-storage URL
    is_private = Column(Boolean, default=False, nullable=False)
    # Creator; mirrored by the single VaultMember row with role=owner
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Vault name={self.name} owner_id={self.owner_id}>"

class VaultMember(Base):
    __tablename__ = "vault_members"
    __table_args__ = (UniqueConstraint("vault_id", "user_id", name="uq_vault_member"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    vault_id = Column(Uuid(as_uuid=True), ForeignKey("vaults.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(VaultRole), default=VaultRole.member, nullable=False)
    joined_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<VaultMember vault_id={self.vault_id} user_id={self.user_id} role={self.role}>"
