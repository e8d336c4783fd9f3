from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, Field, field_validator

EMAIL_RE = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


# ---------- Students ----------
class StudentIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=150, pattern=EMAIL_RE)
    password: str = Field(min_length=6, max_length=128)
    major: str = Field(min_length=1, max_length=100)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _norm_email(v)


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=150, pattern=EMAIL_RE)
    major: Optional[str] = Field(None, min_length=1, max_length=100)
    password: Optional[str] = Field(None, min_length=6, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _norm_email(v)


class StudentOut(BaseModel):
    id: int
    name: str
    email: str
    major: str


# ---------- Teachers ----------
class TeacherIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=150, pattern=EMAIL_RE)
    password: str = Field(min_length=6, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _norm_email(v)


class TeacherUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=150, pattern=EMAIL_RE)
    password: Optional[str] = Field(None, min_length=6, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _norm_email(v)


class TeacherOut(BaseModel):
    id: int
    name: str
    email: str


# ---------- Subjects ----------
class SubjectIn(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    major: str = Field(min_length=1, max_length=100)
    course_year: int = Field(ge=1, le=6)


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    major: Optional[str] = Field(None, min_length=1, max_length=100)
    course_year: Optional[int] = Field(None, ge=1, le=6)


class SubjectOut(SubjectIn):
    id: int


# ---------- Self-service ----------
class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    major: Optional[str] = Field(None, min_length=1, max_length=100)


class PasswordChange(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)
