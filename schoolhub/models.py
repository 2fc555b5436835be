"""SQLAlchemy models shared across all services."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Enum as SqlEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def _new_id() -> str:
    return str(uuid4())


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class RoleEnum(str, Enum):
    ADMIN = "admin"
    USER = "user"


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ClassroomType(str, Enum):
    LECTURE_HALL = "lecture_hall"
    LABORATORY = "laboratory"
    STANDARD = "standard"
    COMPUTER_LAB = "computer_lab"
    MUSIC_ROOM = "music_room"
    ART_STUDIO = "art_studio"
    GYMNASIUM = "gymnasium"


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100))
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True)
    role: Mapped[RoleEnum] = mapped_column(
        SqlEnum(RoleEnum, name="user_role", values_callable=_enum_values), default=RoleEnum.USER
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    teacher: Mapped[Optional["Teacher"]] = relationship(
        back_populates="account", foreign_keys="Teacher.auth_id"
    )


class Teacher(Base):
    __tablename__ = "teachers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    phone_number: Mapped[Optional[str]] = mapped_column(String(30), default=None)
    auth_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), unique=True, default=None
    )
    created_by: Mapped[str] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    account: Mapped[Optional[User]] = relationship(back_populates="teacher", foreign_keys=[auth_id])
    bookings: Mapped[List["RoomBooking"]] = relationship(back_populates="teacher", cascade="all, delete-orphan")


class Classroom(Base):
    __tablename__ = "classrooms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100))
    room_number: Mapped[str] = mapped_column(String(30), unique=True)
    capacity: Mapped[int] = mapped_column(Integer)
    type: Mapped[ClassroomType] = mapped_column(
        SqlEnum(ClassroomType, name="classroom_type", values_callable=_enum_values),
        default=ClassroomType.STANDARD,
    )
    floor: Mapped[int] = mapped_column(Integer, default=1)
    building: Mapped[str] = mapped_column(String(100), default="Main Building")
    description: Mapped[Optional[str]] = mapped_column(Text, default=None)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_by: Mapped[str] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings: Mapped[List["RoomBooking"]] = relationship(back_populates="classroom", cascade="all, delete-orphan")


class RoomBooking(Base):
    __tablename__ = "room_bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    classroom_id: Mapped[str] = mapped_column(ForeignKey("classrooms.id", ondelete="CASCADE"), index=True)
    teacher_id: Mapped[str] = mapped_column(ForeignKey("teachers.id", ondelete="CASCADE"), index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    purpose: Mapped[str] = mapped_column(String(500))
    status: Mapped[BookingStatus] = mapped_column(
        SqlEnum(BookingStatus, name="booking_status", values_callable=_enum_values),
        default=BookingStatus.PENDING,
        index=True,
    )
    created_by: Mapped[str] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    classroom: Mapped[Classroom] = relationship(back_populates="bookings")
    teacher: Mapped[Teacher] = relationship(back_populates="bookings")
