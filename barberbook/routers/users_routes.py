# barberbook/routers/users_routes.py

import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from barberbook.auth import get_current_user
from barberbook.db import get_session
from barberbook.errors import InvalidRequest, NotFound
from barberbook.models import User
from barberbook.schemas import FcmTokenUpdate, UserPublic

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return {
        "id": current_user["id"],
        "email": current_user["email"],
        "role": current_user["role"],
    }


@router.post("/notifications/save-fcm-token")
def save_fcm_token(
    body: FcmTokenUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    if not body.fcm_token:
        raise InvalidRequest("fcmToken is required")

    user = session.get(User, current_user["id"])
    if user is None:
        raise NotFound("User not found")

    user.fcm_token = body.fcm_token
    session.add(user)
    session.commit()
    logger.info("Saved device token", extra={"user_id": user.id})
    return {"message": "Token saved"}
