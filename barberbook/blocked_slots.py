# barberbook/blocked_slots.py

"""
Blocked-slot management.

A blocked slot marks personnel time unavailable without a client. It claims
its minutes like a reservation does, so blocks and bookings exclude each
other. Unblocking deletes the slot outright and frees those minutes.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from barberbook.config import get_settings
from barberbook.conflicts import claim_and_commit, has_conflict, release_claims
from barberbook.core import local_day_bounds
from barberbook.errors import Conflict, Internal, InvalidRequest, NotFound
from barberbook.models import BlockedSlot
from barberbook.schemas import BlockedSlotPublic

logger = logging.getLogger(__name__)

SLOT_OVERLAP = "Overlaps with an existing blocked slot or reservation"


def block_slot(
    session: Session,
    personnel_id: int,
    barbershop_id: Optional[int],
    start: datetime,
    duration_minutes: Optional[int] = None,
    is_monthly: bool = False,
    is_admin_block: bool = False,
) -> BlockedSlot:
    """
    Mark [start, start + duration) unavailable for `personnel_id`.

    The window must not overlap another blocked slot or an active
    reservation of the same personnel.
    """
    if duration_minutes is None:
        duration_minutes = get_settings().DEFAULT_BLOCK_MINUTES
    if duration_minutes <= 0:
        raise InvalidRequest("Duration must be a positive number of minutes")
    end = start + timedelta(minutes=duration_minutes)

    if has_conflict(session, personnel_id, start, end, barbershop_id=barbershop_id):
        raise Conflict(SLOT_OVERLAP)

    slot = BlockedSlot(
        personnel_id=personnel_id,
        barbershop_id=barbershop_id,
        date=start,
        end_time=end,
        is_monthly=is_monthly,
        is_admin_block=is_admin_block,
    )
    session.add(slot)
    try:
        session.flush()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not create blocked slot", extra={"personnel_id": personnel_id})
        raise Internal("Failed to create blocked slot")

    claim_and_commit(session, personnel_id, start, end, SLOT_OVERLAP, blocked_slot_id=slot.id)
    session.refresh(slot)

    logger.info(
        f"Slot blocked for {duration_minutes} min",
        extra={"blocked_slot_id": slot.id, "personnel_id": personnel_id, "barbershop_id": barbershop_id},
    )
    return slot


def unblock_slot(
    session: Session,
    personnel_id: int,
    barbershop_id: Optional[int],
    start: datetime,
) -> BlockedSlotPublic:
    """
    Delete the blocked slot starting within the tolerance window around
    `start`. Returns a snapshot of the deleted slot.
    """
    tolerance = timedelta(seconds=get_settings().UNBLOCK_TOLERANCE_SECONDS)
    slot = session.exec(
        select(BlockedSlot)
        .where(BlockedSlot.personnel_id == personnel_id)
        .where(BlockedSlot.barbershop_id == barbershop_id)
        .where(BlockedSlot.date >= start - tolerance)
        .where(BlockedSlot.date <= start + tolerance)
        .order_by(BlockedSlot.date)
    ).first()
    if slot is None:
        raise NotFound("No blocked slot found at this time")

    deleted = BlockedSlotPublic.model_validate(slot.model_dump())
    release_claims(session, blocked_slot_id=slot.id)
    session.delete(slot)
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not remove blocked slot", extra={"blocked_slot_id": deleted.id})
        raise Internal("Failed to remove blocked slot")

    logger.info(
        "Slot unblocked",
        extra={"blocked_slot_id": deleted.id, "personnel_id": personnel_id, "barbershop_id": barbershop_id},
    )
    return deleted


def blocked_slots_for_day(
    session: Session,
    personnel_id: int,
    barbershop_id: Optional[int],
    day: Union[str, date],
) -> list[BlockedSlot]:
    day_start, day_end = local_day_bounds(day)
    return session.exec(
        select(BlockedSlot)
        .where(BlockedSlot.personnel_id == personnel_id)
        .where(BlockedSlot.barbershop_id == barbershop_id)
        .where(BlockedSlot.date >= day_start)
        .where(BlockedSlot.date <= day_end)
        .order_by(BlockedSlot.date)
    ).all()
