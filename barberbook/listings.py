# barberbook/listings.py

"""Read-side queries over reservations, returned in expanded form."""

from typing import Optional

from sqlmodel import Session, select

from barberbook.booking import expand_reservation
from barberbook.core import local_day_bounds, utcnow
from barberbook.errors import InvalidRequest
from barberbook.models import Reservation
from barberbook.schemas import ReservationPublic, ReservationStatus


def _expand_all(session: Session, stmt) -> list[ReservationPublic]:
    return [expand_reservation(session, r) for r in session.exec(stmt).all()]


def upcoming_for_client(session: Session, client_id: int) -> list[ReservationPublic]:
    stmt = (
        select(Reservation)
        .where(Reservation.client_id == client_id)
        .where(Reservation.date >= utcnow())
        .where(Reservation.status != ReservationStatus.cancelled.value)
        .order_by(Reservation.date)
    )
    return _expand_all(session, stmt)


def past_for_client(session: Session, client_id: int) -> list[ReservationPublic]:
    stmt = (
        select(Reservation)
        .where(Reservation.client_id == client_id)
        .where(Reservation.date < utcnow())
        .order_by(Reservation.date.desc())
    )
    return _expand_all(session, stmt)


def for_personnel(
    session: Session,
    personnel_id: int,
    day: Optional[str] = None,
    status: Optional[str] = None,
) -> list[ReservationPublic]:
    stmt = select(Reservation).where(Reservation.personnel_id == personnel_id)

    if day is not None:
        day_start, day_end = local_day_bounds(day)
        stmt = stmt.where(Reservation.date >= day_start).where(Reservation.date <= day_end)

    if status is not None:
        if status not in {s.value for s in ReservationStatus}:
            raise InvalidRequest("status must be 'pending', 'confirmed' or 'cancelled'")
        stmt = stmt.where(Reservation.status == status)

    return _expand_all(session, stmt.order_by(Reservation.date))


def for_day(
    session: Session,
    day: str,
    barbershop_id: Optional[int] = None,
    personnel_id: Optional[int] = None,
) -> list[ReservationPublic]:
    day_start, day_end = local_day_bounds(day)
    stmt = (
        select(Reservation)
        .where(Reservation.date >= day_start)
        .where(Reservation.date <= day_end)
    )
    if barbershop_id is not None:
        stmt = stmt.where(Reservation.barbershop_id == barbershop_id)
    if personnel_id is not None:
        stmt = stmt.where(Reservation.personnel_id == personnel_id)
    return _expand_all(session, stmt.order_by(Reservation.date))


def for_client(session: Session, client_id: int) -> list[ReservationPublic]:
    """Full history of one client, every status, oldest first."""
    stmt = (
        select(Reservation)
        .where(Reservation.client_id == client_id)
        .order_by(Reservation.date)
    )
    return _expand_all(session, stmt)


def all_reservations(session: Session) -> list[ReservationPublic]:
    return _expand_all(session, select(Reservation).order_by(Reservation.date))
