# barberbook/side_effects.py

"""
Fire-and-forget side effects: loyalty accrual and push notifications.

Jobs are queued on FastAPI's BackgroundTasks, so they run after the response
has been sent. Every job is wrapped by `run_isolated`: it is retried a few
times, failures are logged, and nothing is ever raised back into the request
or the server. Jobs open their own database session.
"""

import logging
from typing import Callable, ContextManager, Optional

from fastapi import BackgroundTasks, Depends
from sqlmodel import Session

from barberbook.config import get_settings
from barberbook.db import session_scope
from barberbook.loyalty import LoyaltyLedger, get_loyalty_ledger
from barberbook.models import User
from barberbook.notifications import PushSender, get_push_sender

logger = logging.getLogger(__name__)


class PushDeliveryError(Exception):
    pass


def run_isolated(job: str, func: Callable, retries: int, *args, **kwargs) -> bool:
    """Run `func`, retrying up to `retries` extra times. Returns success, never raises."""
    attempts = retries + 1
    for attempt in range(1, attempts + 1):
        try:
            func(*args, **kwargs)
            return True
        except Exception:
            if attempt < attempts:
                logger.warning(
                    f"Background job {job} failed (attempt {attempt}/{attempts}), retrying",
                    extra={"job": job},
                    exc_info=True,
                )
            else:
                logger.error(
                    f"Background job {job} failed after {attempts} attempts",
                    extra={"job": job},
                    exc_info=True,
                )
    return False


class SideEffectDispatcher:
    def __init__(
        self,
        background_tasks: BackgroundTasks,
        ledger: LoyaltyLedger,
        push_sender: PushSender,
        session_factory: Callable[[], ContextManager[Session]] = session_scope,
        retries: Optional[int] = None,
    ):
        self._tasks = background_tasks
        self._ledger = ledger
        self._push_sender = push_sender
        self._session_factory = session_factory
        self._retries = get_settings().SIDE_EFFECT_RETRIES if retries is None else retries

    def award_loyalty(self, user_id: int, points: int, description: str) -> None:
        self._enqueue("loyalty_award", self._ledger.award, user_id, points, description)

    def notify_user(self, user_id: Optional[int], title: str, body: str, data: Optional[dict] = None) -> None:
        if user_id is None:
            return
        self._enqueue("push_notification", self.deliver_push, user_id, title, body, data or {})

    def _enqueue(self, job: str, func: Callable, *args) -> None:
        self._tasks.add_task(run_isolated, job, func, self._retries, *args)

    def deliver_push(self, user_id: int, title: str, body: str, data: dict) -> None:
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if user is None or not user.fcm_token:
                logger.warning("No device token, skipping push", extra={"user_id": user_id})
                return
            token = user.fcm_token

            result = self._push_sender.send(token, title, body, data)
            if result.ok:
                return

            if result.invalid_token:
                # only clear it if the user has not registered a new one meanwhile
                session.refresh(user)
                if user.fcm_token == token:
                    user.fcm_token = None
                    session.add(user)
                    session.commit()
                    logger.info("Cleared stale device token", extra={"user_id": user_id})
                return

        raise PushDeliveryError(result.error or "push delivery failed")


# Dependency: one dispatcher per request, bound to that request's BackgroundTasks
def get_dispatcher(
    background_tasks: BackgroundTasks,
    ledger: LoyaltyLedger = Depends(get_loyalty_ledger),
    push_sender: PushSender = Depends(get_push_sender),
) -> SideEffectDispatcher:
    return SideEffectDispatcher(background_tasks, ledger, push_sender)
