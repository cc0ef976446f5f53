# barberbook/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from barberbook.auth import create_access_token, verify_password
from barberbook.db import get_session
from barberbook.models import User
from barberbook.schemas import Token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    # OAuth2 password flow calls the email "username"
    user = session.exec(
        select(User).where(User.email == form_data.username)
    ).first()

    if user is None or not verify_password(form_data.password, user.password_hash):
        logger.info("Rejected login attempt")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info("User logged in", extra={"user_id": user.id})
    return {
        "access_token": create_access_token({"sub": user.email, "role": user.role}),
        "token_type": "bearer",
    }
