from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from models import RequestStatus


class GroupRequestIn(BaseModel):
    subject_id: int = Field(ge=1)
    comment: Optional[str] = Field(None, max_length=1000)
    student_id: Optional[int] = Field(None, ge=1)


class StatusIn(BaseModel):
    status: RequestStatus
    admin_comment: Optional[str] = Field(None, max_length=1000)


class SearchArgs(BaseModel):
    status: Optional[RequestStatus] = None
    student_id: Optional[int] = None
    subject_id: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
