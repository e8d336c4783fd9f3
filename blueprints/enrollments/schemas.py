from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, Field

from models import PaymentStatus


class EnrollIn(BaseModel):
    course_group_id: int = Field(ge=1)
    # админ записывает любого студента; студент только себя
    student_id: Optional[int] = Field(None, ge=1)


class PaymentIn(BaseModel):
    payment_status: PaymentStatus


class ForceDeleteIn(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
