# barberbook/loyalty.py

import logging
from typing import Callable, ContextManager

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from barberbook.core import utcnow
from barberbook.db import session_scope
from barberbook.models import Loyalty, LoyaltyHistory

logger = logging.getLogger(__name__)


def get_or_create_loyalty(session: Session, user_id: int) -> Loyalty:
    stmt = select(Loyalty).where(Loyalty.user_id == user_id)
    loyalty = session.exec(stmt.with_for_update()).first()
    if loyalty is not None:
        return loyalty

    loyalty = Loyalty(user_id=user_id, points=0)
    session.add(loyalty)
    try:
        session.flush()
    except IntegrityError:
        # created concurrently; use theirs
        session.rollback()
        loyalty = session.exec(stmt.with_for_update()).one()
    return loyalty


def loyalty_history(session: Session, loyalty: Loyalty) -> list[LoyaltyHistory]:
    return session.exec(
        select(LoyaltyHistory)
        .where(LoyaltyHistory.loyalty_id == loyalty.id)
        .order_by(LoyaltyHistory.date.desc(), LoyaltyHistory.id.desc())
    ).all()


class LoyaltyLedger:
    """Point balance per user plus an append-only award history."""

    def __init__(self, session_factory: Callable[[], ContextManager[Session]] = session_scope):
        self._session_factory = session_factory

    def award(self, user_id: int, points: int, description: str) -> int:
        """Add `points` to the user's balance and record why. Returns the new balance."""
        with self._session_factory() as session:
            loyalty = get_or_create_loyalty(session, user_id)
            loyalty.points += points
            loyalty.updated_at = utcnow()
            session.add(loyalty)
            session.add(
                LoyaltyHistory(loyalty_id=loyalty.id, description=description, points=points)
            )
            session.commit()
            balance = loyalty.points

        logger.info(
            f"Awarded {points} loyalty points, balance={balance}",
            extra={"user_id": user_id},
        )
        return balance


# Dependency: overridden in tests
def get_loyalty_ledger() -> LoyaltyLedger:
    return LoyaltyLedger()
