# barberbook/models.py

from typing import Any, Optional
from datetime import datetime

from sqlalchemy import Column, DateTime, Index, UniqueConstraint
from sqlmodel import SQLModel, Field

from barberbook.core import utcnow


def utc_field(**kwargs) -> Any:
    """Naive UTC timestamp column, independent of how sqlmodel maps `datetime`."""
    return Field(sa_column=Column(DateTime(timezone=False), nullable=False), **kwargs)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str = "client"  # admin, owner, personnel or client
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    fcm_token: Optional[str] = None
    barbershop_id: Optional[int] = Field(default=None, foreign_key="barbershop.id")


class Barbershop(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    barbershop_id: Optional[int] = Field(default=None, foreign_key="barbershop.id", index=True)
    duration: Optional[int] = None  # minutes
    price: float = 0
    loyalty_points: int = 0


class ServicePersonnel(SQLModel, table=True):
    # eligible staff for a service, in preference order
    service_id: int = Field(foreign_key="service.id", primary_key=True)
    personnel_id: int = Field(foreign_key="user.id", primary_key=True)
    position: int = 0


class Reservation(SQLModel, table=True):
    __table_args__ = (
        Index("ix_reservation_personnel_window", "personnel_id", "date", "end_time"),
        Index("ix_reservation_client_date", "client_id", "date"),
        Index("ix_reservation_barbershop_date", "barbershop_id", "date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    client_id: int = Field(foreign_key="user.id")
    personnel_id: int = Field(foreign_key="user.id")
    barbershop_id: int = Field(foreign_key="barbershop.id")
    date: datetime = utc_field()
    end_time: datetime = utc_field()
    status: str = "pending"
    price: float = 0
    created_at: datetime = utc_field(default_factory=utcnow)
    updated_at: datetime = utc_field(default_factory=utcnow)


class ReservationService(SQLModel, table=True):
    reservation_id: int = Field(foreign_key="reservation.id", primary_key=True)
    service_id: int = Field(foreign_key="service.id", primary_key=True)
    position: int = 0


class BlockedSlot(SQLModel, table=True):
    __table_args__ = (
        Index("ix_blockedslot_personnel_window", "personnel_id", "date", "end_time"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    personnel_id: int = Field(foreign_key="user.id")
    barbershop_id: Optional[int] = Field(default=None, foreign_key="barbershop.id")
    date: datetime = utc_field()
    end_time: datetime = utc_field()
    is_monthly: bool = False
    is_admin_block: bool = False


class OccupancyClaim(SQLModel, table=True):
    """One row per minute a personnel is committed; the unique index serializes overlapping writers."""

    __table_args__ = (
        UniqueConstraint("personnel_id", "bucket", name="uq_personnel_bucket"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    personnel_id: int = Field(foreign_key="user.id")
    bucket: datetime = utc_field()
    reservation_id: Optional[int] = Field(default=None, foreign_key="reservation.id", index=True)
    blocked_slot_id: Optional[int] = Field(default=None, foreign_key="blockedslot.id", index=True)


class Loyalty(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True)
    points: int = 0
    created_at: datetime = utc_field(default_factory=utcnow)
    updated_at: datetime = utc_field(default_factory=utcnow)


class LoyaltyHistory(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    loyalty_id: int = Field(foreign_key="loyalty.id", index=True)
    description: str
    points: int
    date: datetime = utc_field(default_factory=utcnow)
