# barberbook/routers/blocks_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from barberbook.auth import get_current_user
from barberbook.blocked_slots import block_slot, blocked_slots_for_day, unblock_slot
from barberbook.core import local_slot_start
from barberbook.db import get_session
from barberbook.deps import require_role
from barberbook.errors import InvalidRequest
from barberbook.schemas import BlockCreate, BlockDelete, BlockedSlotPublic, UnblockResponse, UserRole

# Registered ahead of the reservations router so "/reservations/block" is not
# captured by "/reservations/{reservation_id}".
router = APIRouter(
    prefix="/reservations",
    tags=["blocked slots"],
)

STAFF = (UserRole.personnel.value, UserRole.admin.value)


@router.post("/block", response_model=BlockedSlotPublic, status_code=201)
def create_block(
    block: BlockCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF)
    if not block.date or not block.time or block.barbershop_id is None:
        raise InvalidRequest("date, time and barbershopId are required")

    start = local_slot_start(block.date, block.time)
    return block_slot(
        session,
        personnel_id=current_user["id"],
        barbershop_id=block.barbershop_id,
        start=start,
        duration_minutes=block.duration,
        is_monthly=block.is_monthly,
        is_admin_block=current_user["role"] == UserRole.admin.value,
    )


@router.delete("/block", response_model=UnblockResponse)
def delete_block(
    block: BlockDelete,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF)
    if not block.date or not block.time or block.barbershop_id is None:
        raise InvalidRequest("date, time and barbershopId are required")

    start = local_slot_start(block.date, block.time)
    deleted = unblock_slot(session, current_user["id"], block.barbershop_id, start)
    return {"message": "Blocked slot removed", "deleted": deleted}


@router.get("/blocked/day", response_model=List[BlockedSlotPublic])
def list_blocked_for_day(
    date: Optional[str] = None,
    barbershop_id: Optional[int] = Query(default=None, alias="barbershopId"),
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *STAFF)
    if not date or barbershop_id is None:
        raise InvalidRequest("Date and barbershop ID query parameters are required.")

    return blocked_slots_for_day(session, current_user["id"], barbershop_id, date)
