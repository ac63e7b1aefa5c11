# app/schemas/report.py
from typing import Optional, Literal
from pydantic import BaseModel
from datetime import datetime
import uuid

class ReportStatus(BaseModel):
    month_year: str
    exists: bool
    is_outdated: bool = False
    label: Literal["Generate", "View", "Refresh"]
    report_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None

class ReportRead(BaseModel):
    id: uuid.UUID
    month_year: str
    analysis_html: str
    created_at: datetime
    invalidated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class MonthOption(BaseModel):
    value: str
    label: str
