from __future__ import annotations
from datetime import time
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from models import CourseGroupStatus, CourseGroupType, DayOfWeek


def _upper(v):
    return v.upper() if isinstance(v, str) else v


class GroupIn(BaseModel):
    subject_id: int = Field(ge=1)
    teacher_id: Optional[int] = Field(None, ge=1)
    type: CourseGroupType = CourseGroupType.REGULAR
    status: CourseGroupStatus = CourseGroupStatus.PLANNED
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    max_capacity: Optional[int] = Field(None, ge=1, le=1000)

    @field_validator("type", "status", mode="before")
    @classmethod
    def normalize_enums(cls, v):
        return _upper(v)


class GroupStatusIn(BaseModel):
    status: CourseGroupStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _upper(v)


class TeacherAssignIn(BaseModel):
    teacher_id: int = Field(ge=1)


class SessionIn(BaseModel):
    course_group_id: int = Field(ge=1)
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    classroom: Optional[str] = Field(None, max_length=50)

    @field_validator("day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, v):
        return _upper(v)

    @model_validator(mode="after")
    def check_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be > start_time")
        return self


class SessionUpdateIn(BaseModel):
    day_of_week: Optional[DayOfWeek] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    classroom: Optional[str] = Field(None, max_length=50)

    @field_validator("day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, v):
        return _upper(v)
