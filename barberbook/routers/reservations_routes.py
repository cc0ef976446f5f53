# barberbook/routers/reservations_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from barberbook import listings
from barberbook.auth import get_current_user
from barberbook.booking import create_reservation
from barberbook.db import get_session
from barberbook.deps import require_role
from barberbook.errors import Forbidden, InvalidRequest, NotFound
from barberbook.models import User
from barberbook.schemas import (
    CancelResponse,
    ReservationCreate,
    ReservationPublic,
    StatusUpdate,
    UserRole,
)
from barberbook.side_effects import SideEffectDispatcher, get_dispatcher
from barberbook.transitions import cancel_by_client, update_status

router = APIRouter(
    prefix="/reservations",
    tags=["reservations"],
)


@router.post("", response_model=ReservationPublic, status_code=201)
def book(
    body: ReservationCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
):
    return create_reservation(
        session,
        dispatcher,
        client_id=current_user["id"],
        service_ids=body.services,
        start=body.date,
        barbershop_id=body.barbershop_id,
        personnel_id=body.personnel,
    )


@router.patch("/{reservation_id}/status", response_model=ReservationPublic)
def change_status(
    reservation_id: int,
    body: StatusUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
):
    require_role(current_user, UserRole.personnel.value)
    return update_status(
        session,
        dispatcher,
        reservation_id=reservation_id,
        personnel_id=current_user["id"],
        status=body.status,
        client_id=body.client_id,
    )


@router.delete("/{reservation_id}", response_model=CancelResponse)
def cancel(
    reservation_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    dispatcher: SideEffectDispatcher = Depends(get_dispatcher),
):
    reservation = cancel_by_client(session, dispatcher, reservation_id, current_user["id"])
    return {"message": "Reservation cancelled", "reservation": reservation}


@router.get("/upcoming", response_model=List[ReservationPublic])
def my_upcoming(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return listings.upcoming_for_client(session, current_user["id"])


@router.get("/past", response_model=List[ReservationPublic])
def my_past(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return listings.past_for_client(session, current_user["id"])


@router.get("", response_model=List[ReservationPublic])
def all_reservations(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.admin.value)
    return listings.all_reservations(session)


@router.get("/client/{client_id}", response_model=List[ReservationPublic])
def client_history(
    client_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, UserRole.personnel.value, UserRole.admin.value)
    history = listings.for_client(session, client_id)
    if not history:
        raise NotFound("No reservations found for this client.")
    return history


@router.get("/personnel/{personnel_id}", response_model=List[ReservationPublic])
def personnel_reservations(
    personnel_id: int,
    date: Optional[str] = None,
    status: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    personnel = session.get(User, personnel_id)
    if personnel is None:
        raise NotFound("Personnel not found.")
    if personnel.role != UserRole.personnel.value:
        raise InvalidRequest("The specified user is not a personnel.")

    # self, admin, or someone attached to the same barbershop
    same_shop = (
        personnel.barbershop_id is not None
        and current_user["barbershop_id"] == personnel.barbershop_id
    )
    if (
        personnel_id != current_user["id"]
        and current_user["role"] != UserRole.admin.value
        and not same_shop
    ):
        raise Forbidden("Personnel must belong to your barbershop.")

    return listings.for_personnel(session, personnel_id, day=date, status=status)


@router.get("/day/{date}", response_model=List[ReservationPublic])
def reservations_for_day(
    date: str,
    barbershop_id: Optional[int] = Query(default=None, alias="barbershopId"),
    personnel_id: Optional[int] = Query(default=None, alias="personnelId"),
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    if personnel_id is None and current_user["role"] == UserRole.personnel.value:
        personnel_id = current_user["id"]
    return listings.for_day(session, date, barbershop_id=barbershop_id, personnel_id=personnel_id)
