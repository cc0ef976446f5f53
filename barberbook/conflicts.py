# barberbook/conflicts.py

"""
Conflict detection over the availability store.

Reservations and blocked slots both occupy personnel time through the same
(personnel_id, date, end_time) shape, so one overlap predicate serves both.
The query check gives the friendly fast path; occupancy claims under a unique
index make concurrent overlapping writers collide at commit time.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import delete, insert, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from barberbook.core import minute_buckets
from barberbook.errors import Conflict, Internal
from barberbook.models import BlockedSlot, OccupancyClaim, Reservation
from barberbook.schemas import ACTIVE_STATUSES

logger = logging.getLogger(__name__)


def _overlapping(model, personnel_id: int, start: datetime, end: datetime):
    return (
        select(model.id)
        .where(model.personnel_id == personnel_id)
        .where(model.date < end)
        .where(model.end_time > start)
        .limit(1)
    )


def has_conflict(
    session: Session,
    personnel_id: int,
    start: datetime,
    end: datetime,
    barbershop_id: Optional[int] = None,
    statuses: Iterable[str] = ACTIVE_STATUSES,
    include_reservations: bool = True,
    include_blocks: bool = True,
) -> bool:
    """
    True when an existing reservation or blocked slot of `personnel_id`
    overlaps [start, end).

    Reservations are restricted to `statuses` (active ones by default) and,
    when given, to `barbershop_id`. Blocked slots are scoped to the barbershop
    only when one is given; shop-less blocks (admin-wide) always count.

    Store errors surface as Internal; a failed check never reads as "free".
    """
    try:
        if include_reservations:
            stmt = _overlapping(Reservation, personnel_id, start, end).where(
                Reservation.status.in_(list(statuses))
            )
            if barbershop_id is not None:
                stmt = stmt.where(Reservation.barbershop_id == barbershop_id)
            if session.exec(stmt).first() is not None:
                return True

        if include_blocks:
            stmt = _overlapping(BlockedSlot, personnel_id, start, end)
            if barbershop_id is not None:
                stmt = stmt.where(
                    or_(
                        BlockedSlot.barbershop_id == barbershop_id,
                        BlockedSlot.barbershop_id.is_(None),
                    )
                )
            if session.exec(stmt).first() is not None:
                return True
    except SQLAlchemyError:
        logger.exception(
            "Conflict check failed",
            extra={"personnel_id": personnel_id, "barbershop_id": barbershop_id},
        )
        raise Internal("Could not verify availability")

    return False


def claim_and_commit(
    session: Session,
    personnel_id: int,
    start: datetime,
    end: datetime,
    message: str,
    reservation_id: Optional[int] = None,
    blocked_slot_id: Optional[int] = None,
) -> None:
    """
    Claim every minute of [start, end) for the owner and commit the whole
    unit of work. A lost occupancy race surfaces as Conflict(message).

    Claims go in as one executemany; a month-long block is ~43k rows.
    """
    rows = [
        {
            "personnel_id": personnel_id,
            "bucket": bucket,
            "reservation_id": reservation_id,
            "blocked_slot_id": blocked_slot_id,
        }
        for bucket in minute_buckets(start, end)
    ]
    try:
        session.exec(insert(OccupancyClaim), params=rows)
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.warning(
            f"Occupancy claim collision: {message}",
            extra={"personnel_id": personnel_id},
        )
        raise Conflict(message)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Commit failed", extra={"personnel_id": personnel_id})
        raise Internal("Could not save changes")


def release_claims(
    session: Session,
    reservation_id: Optional[int] = None,
    blocked_slot_id: Optional[int] = None,
) -> None:
    """Drop the owner's claims; takes effect with the caller's commit."""
    if reservation_id is not None:
        owner = OccupancyClaim.reservation_id == reservation_id
    elif blocked_slot_id is not None:
        owner = OccupancyClaim.blocked_slot_id == blocked_slot_id
    else:
        return
    session.exec(delete(OccupancyClaim).where(owner))
