# app/models/report.py
import uuid
from sqlalchemy import Column, String, Text, DateTime, Enum, Uuid, Index
from app.core.database import Base
from app.core.owner import OwnedMixin, OwnerType
from app.utils.dates import utcnow

class Report(OwnedMixin, Base):
    __tablename__ = "reports"
    __table_args__ = (
        Index("ix_reports_key", "owner_id", "owner_type", "month_year", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), nullable=False)
    owner_type = Column(Enum(OwnerType), nullable=False)
    month_year = Column(String(length=7), nullable=False)  # "YYYY-MM"
    analysis_html = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    # Set when a transaction of the month is deleted or moved to another month
    invalidated_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Report {self.month_year} owner={self.owner_type}:{self.owner_id} created_at={self.created_at}>"
