# barberbook/transitions.py

"""
Reservation status transitions.

    pending   --personnel confirms-->   confirmed   (first time: loyalty award)
    pending   --personnel cancels--->   cancelled
    confirmed --personnel cancels--->   cancelled
    pending/confirmed --client cancels (future only)--> cancelled

Cancelled is terminal. The status write is committed before any side effect
is queued; side effects never touch the outcome of the transition.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, update

from barberbook.booking import expand_reservation, reservation_services
from barberbook.conflicts import release_claims
from barberbook.core import local_hhmm, utcnow
from barberbook.errors import Conflict, Forbidden, Internal, InvalidRequest, NotFound
from barberbook.models import Reservation, User
from barberbook.schemas import ReservationPublic, ReservationStatus
from barberbook.side_effects import SideEffectDispatcher

logger = logging.getLogger(__name__)

PERSONNEL_TARGETS = (ReservationStatus.confirmed.value, ReservationStatus.cancelled.value)


def _get_reservation(session: Session, reservation_id: int) -> Reservation:
    reservation = session.get(Reservation, reservation_id)
    if reservation is None:
        raise NotFound("Reservation not found.")
    return reservation


def _apply_status(session: Session, reservation: Reservation, status: str) -> bool:
    """
    Move `reservation` from its loaded status to `status`.

    The UPDATE only matches while the row still holds the loaded status, so
    of two concurrent writers exactly one wins. Returns False for the loser;
    nothing is written in that case.
    """
    previous = reservation.status
    try:
        result = session.exec(
            update(Reservation)
            .where(Reservation.id == reservation.id)
            .where(Reservation.status == previous)
            .values(status=status, updated_at=utcnow())
        )
        if result.rowcount != 1:
            session.rollback()
            session.refresh(reservation)
            return False
        if status == ReservationStatus.cancelled.value:
            # the window is free again
            release_claims(session, reservation_id=reservation.id)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Status update failed", extra={"reservation_id": reservation.id})
        raise Internal("Could not update reservation status")
    session.refresh(reservation)
    return True


def update_status(
    session: Session,
    dispatcher: SideEffectDispatcher,
    reservation_id: int,
    personnel_id: int,
    status: str,
    client_id: Optional[int] = None,
) -> ReservationPublic:
    """Personnel-driven confirm/cancel of a reservation assigned to them."""
    if status not in PERSONNEL_TARGETS:
        raise InvalidRequest("Invalid status. Must be 'confirmed' or 'cancelled'.")

    reservation = _get_reservation(session, reservation_id)

    if reservation.personnel_id != personnel_id:
        raise Forbidden("Unauthorized to update this reservation.")

    if client_id is not None and reservation.client_id != client_id:
        raise InvalidRequest("Client ID does not match reservation.")

    previous = reservation.status
    if previous == ReservationStatus.cancelled.value:
        raise InvalidRequest("Reservation already cancelled.")
    if previous == status:
        # repeated confirm: nothing to write, nothing to award
        return expand_reservation(session, reservation)

    if not _apply_status(session, reservation, status):
        # another writer moved it first; judge the request against what they wrote
        logger.info(
            f"Lost concurrent transition to {status}, now {reservation.status}",
            extra={"reservation_id": reservation.id, "personnel_id": personnel_id},
        )
        if reservation.status == status:
            return expand_reservation(session, reservation)
        raise Conflict("Reservation status changed concurrently, please retry.")

    logger.info(
        f"Reservation {previous} -> {status}",
        extra={"reservation_id": reservation.id, "personnel_id": personnel_id},
    )

    services = reservation_services(session, reservation.id)
    names = ", ".join(service.name for service in services)
    at = local_hhmm(reservation.date)

    if status == ReservationStatus.confirmed.value:
        points = sum(service.loyalty_points or 0 for service in services)
        if points > 0:
            dispatcher.award_loyalty(reservation.client_id, points, f"Reservation confirmed: {names}")

        personnel = session.get(User, personnel_id)
        by = f" by {personnel.first_name}" if personnel and personnel.first_name else ""
        dispatcher.notify_user(
            reservation.client_id,
            "Booking Confirmed!",
            f"Your booking for {names} at {at} has been confirmed{by}.",
            {"reservationId": reservation.id},
        )
    else:
        dispatcher.notify_user(
            reservation.client_id,
            "Booking Cancelled",
            f"Unfortunately, your booking for {names} at {at} has been cancelled.",
            {"reservationId": reservation.id},
        )

    return expand_reservation(session, reservation)


def cancel_by_client(
    session: Session,
    dispatcher: SideEffectDispatcher,
    reservation_id: int,
    client_id: int,
) -> ReservationPublic:
    """Client self-service cancellation. The row stays, with status cancelled."""
    reservation = _get_reservation(session, reservation_id)

    if reservation.client_id != client_id:
        raise Forbidden("You can only cancel your own reservations.")
    if reservation.status == ReservationStatus.cancelled.value:
        raise InvalidRequest("Reservation already cancelled.")
    if reservation.date <= utcnow():
        raise InvalidRequest("Cannot cancel a past reservation.")

    if not _apply_status(session, reservation, ReservationStatus.cancelled.value):
        if reservation.status == ReservationStatus.cancelled.value:
            raise InvalidRequest("Reservation already cancelled.")
        raise Conflict("Reservation status changed concurrently, please retry.")

    logger.info(
        "Reservation cancelled by client",
        extra={"reservation_id": reservation.id, "client_id": client_id},
    )

    client = session.get(User, client_id)
    who = f"{client.first_name} {client.last_name}".strip() if client else ""
    dispatcher.notify_user(
        reservation.personnel_id,
        "Reservation Cancelled",
        f"{who or 'A client'} cancelled the booking at {local_hhmm(reservation.date)}.",
        {"reservationId": reservation.id},
    )

    return expand_reservation(session, reservation)
