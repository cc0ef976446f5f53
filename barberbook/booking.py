# barberbook/booking.py

"""
Booking orchestrator.

create_reservation() validates a booking request, derives the interval and
price from the requested services, runs the conflict check, and persists a
pending Reservation together with its occupancy claims in one commit.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from barberbook.conflicts import claim_and_commit, has_conflict
from barberbook.core import compute_end_time, local_hhmm, parse_instant, total_duration
from barberbook.errors import Internal, InvalidRequest, NotFound, Conflict
from barberbook.models import Reservation, ReservationService, Service, ServicePersonnel, User
from barberbook.schemas import PersonRef, ReservationPublic, ReservationStatus, ServiceSummary
from barberbook.side_effects import SideEffectDispatcher

logger = logging.getLogger(__name__)

SLOT_TAKEN = "This slot is already booked or blocked."


def load_services(session: Session, service_ids: Sequence[int]) -> list[Service]:
    """Services for `service_ids`, in request order. NotFound if any id is unknown."""
    found = session.exec(select(Service).where(Service.id.in_(service_ids))).all()
    if len(found) != len(service_ids):
        raise NotFound("One or more services not found.")
    by_id = {service.id: service for service in found}
    return [by_id[service_id] for service_id in service_ids]


def resolve_barbershop(session: Session, service_ids: Sequence[int], barbershop_id: Optional[int]) -> int:
    if barbershop_id is not None:
        return barbershop_id
    first = session.get(Service, service_ids[0])
    if first is None or first.barbershop_id is None:
        raise InvalidRequest("Barbershop ID is required or cannot be derived.")
    return first.barbershop_id


def resolve_personnel(session: Session, services: Sequence[Service], personnel_id: Optional[int]) -> int:
    """
    Explicit personnel must exist. Otherwise every service contributes its
    first eligible staff member and they must all agree.
    """
    if personnel_id is not None:
        if session.get(User, personnel_id) is None:
            raise InvalidRequest("Invalid personnel ID.")
        return personnel_id

    rows = session.exec(
        select(ServicePersonnel)
        .where(ServicePersonnel.service_id.in_([s.id for s in services]))
        .order_by(ServicePersonnel.service_id, ServicePersonnel.position)
    ).all()
    first_choice = {}
    for row in rows:
        first_choice.setdefault(row.service_id, row.personnel_id)

    candidates = set(first_choice.values())
    if len(candidates) > 1:
        raise InvalidRequest("All services must be assigned to the same personnel.")
    if not candidates:
        raise InvalidRequest("Personnel is required for booking.")
    return candidates.pop()


def reservation_services(session: Session, reservation_id: int) -> list[Service]:
    return session.exec(
        select(Service)
        .join(ReservationService, ReservationService.service_id == Service.id)
        .where(ReservationService.reservation_id == reservation_id)
        .order_by(ReservationService.position)
    ).all()


def _person(session: Session, user_id: Optional[int]) -> Optional[PersonRef]:
    user = session.get(User, user_id) if user_id is not None else None
    if user is None:
        return None
    return PersonRef(id=user.id, first_name=user.first_name, last_name=user.last_name)


def expand_reservation(session: Session, reservation: Reservation) -> ReservationPublic:
    """Reservation with service names/prices and personnel/client names filled in."""
    services = reservation_services(session, reservation.id)
    personnel = _person(session, reservation.personnel_id)
    if personnel is None:
        personnel = PersonRef(id=reservation.personnel_id, first_name="", last_name="")
    return ReservationPublic(
        id=reservation.id,
        client=_person(session, reservation.client_id),
        personnel=personnel,
        barbershop_id=reservation.barbershop_id,
        services=[
            ServiceSummary(id=s.id, name=s.name, price=s.price, duration=s.duration)
            for s in services
        ],
        date=reservation.date,
        end_time=reservation.end_time,
        status=reservation.status,
        price=reservation.price,
    )


def create_reservation(
    session: Session,
    dispatcher: SideEffectDispatcher,
    client_id: int,
    service_ids: Optional[Sequence[int]],
    start: Union[str, datetime, None],
    barbershop_id: Optional[int] = None,
    personnel_id: Optional[int] = None,
) -> ReservationPublic:
    # 1) Services requested (a set: duplicates collapse)
    if not service_ids:
        raise InvalidRequest("Missing or invalid service(s).")
    service_ids = list(dict.fromkeys(service_ids))

    # 2) Start instant
    start_at = parse_instant(start)
    if start_at.second or start_at.microsecond:
        raise InvalidRequest("Start time must be on a whole minute.")

    # 3) Barbershop, explicit or derived from the first service
    barbershop_id = resolve_barbershop(session, service_ids, barbershop_id)

    # 4) Every service must exist
    services = load_services(session, service_ids)

    # 5) No cross-shop bookings
    shops = {service.barbershop_id for service in services}
    if len(shops) > 1 or barbershop_id not in shops:
        raise InvalidRequest("All services must belong to the selected barbershop.")

    # 6) One personnel for the whole booking
    personnel_id = resolve_personnel(session, services, personnel_id)

    # 7) Interval
    durations = [service.duration for service in services]
    end_at = compute_end_time(start_at, durations)

    # 8) Pending and confirmed reservations both hold the slot
    if has_conflict(session, personnel_id, start_at, end_at, barbershop_id=barbershop_id):
        logger.info(
            "Booking rejected: slot taken",
            extra={"personnel_id": personnel_id, "barbershop_id": barbershop_id, "client_id": client_id},
        )
        raise Conflict(SLOT_TAKEN)

    # 9) Persist reservation, its services and its occupancy claims together
    reservation = Reservation(
        client_id=client_id,
        personnel_id=personnel_id,
        barbershop_id=barbershop_id,
        date=start_at,
        end_time=end_at,
        status=ReservationStatus.pending.value,
        price=sum(service.price or 0 for service in services),
    )
    session.add(reservation)
    try:
        session.flush()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not create reservation", extra={"client_id": client_id})
        raise Internal("Could not create reservation")

    session.add_all(
        ReservationService(reservation_id=reservation.id, service_id=service.id, position=position)
        for position, service in enumerate(services)
    )
    claim_and_commit(session, personnel_id, start_at, end_at, SLOT_TAKEN, reservation_id=reservation.id)
    session.refresh(reservation)

    logger.info(
        f"Reservation created: {total_duration(durations)} min, price={reservation.price}",
        extra={
            "reservation_id": reservation.id,
            "personnel_id": personnel_id,
            "barbershop_id": barbershop_id,
            "client_id": client_id,
        },
    )

    # 11) Tell the personnel, after the response
    dispatcher.notify_user(
        personnel_id,
        "New Reservation Pending",
        f"New booking for {', '.join(s.name for s in services)} at {local_hhmm(start_at)}",
        {"reservationId": reservation.id},
    )

    # 10) Expanded view for the caller
    return expand_reservation(session, reservation)
