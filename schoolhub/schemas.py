"""Pydantic schemas shared across the services."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .models import BookingStatus, ClassroomType, RoleEnum


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class Actor(BaseModel):
    """The authenticated caller, resolved once per request."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: RoleEnum
    teacher_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.ADMIN


class UserBase(BaseModel):
    name: str = Field(..., max_length=100)
    username: str = Field(..., max_length=50)
    email: EmailStr
    role: RoleEnum = RoleEnum.USER


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class UserRead(UserBase):
    id: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TeacherCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=30)
    auth_id: Optional[str] = None


class TeacherRead(TeacherCreate):
    id: str

    model_config = {"from_attributes": True}


class ClassroomBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    room_number: str = Field(..., min_length=1, max_length=30)
    capacity: int = Field(..., ge=1)
    type: ClassroomType = ClassroomType.STANDARD
    floor: int = Field(1, ge=0)
    building: str = Field("Main Building", min_length=1, max_length=100)
    description: Optional[str] = None
    is_available: bool = True


class ClassroomCreate(ClassroomBase):
    pass


class ClassroomUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    capacity: Optional[int] = Field(None, ge=1)
    type: Optional[ClassroomType] = None
    floor: Optional[int] = Field(None, ge=0)
    building: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_available: Optional[bool] = None


class ClassroomRead(ClassroomBase):
    id: str

    model_config = {"from_attributes": True}


class ClassroomSummary(BaseModel):
    name: str
    room_number: str

    model_config = {"from_attributes": True}


class TeacherSummary(BaseModel):
    name: str

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: str
    classroom_id: str
    teacher_id: str
    start_time: datetime
    end_time: datetime
    purpose: str
    status: BookingStatus
    created_by: str
    created_at: datetime
    classroom: Optional[ClassroomSummary] = None
    teacher: Optional[TeacherSummary] = None

    model_config = {"from_attributes": True}


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class SweepResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    updated_count: Optional[int] = Field(None, alias="updatedCount")
    deleted_count: Optional[int] = Field(None, alias="deletedCount")
