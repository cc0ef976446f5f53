# barberbook/routers/loyalty_routes.py

from fastapi import APIRouter, Depends
from sqlmodel import Session

from barberbook.auth import get_current_user
from barberbook.db import get_session
from barberbook.loyalty import get_or_create_loyalty, loyalty_history
from barberbook.schemas import LoyaltyPublic

router = APIRouter(
    prefix="/loyalty",
    tags=["loyalty"],
)


@router.get("/me", response_model=LoyaltyPublic)
def my_loyalty(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    loyalty = get_or_create_loyalty(session, current_user["id"])
    session.commit()
    session.refresh(loyalty)
    return {
        "points": loyalty.points,
        "history": loyalty_history(session, loyalty),
    }
