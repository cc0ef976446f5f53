# barberbook/notifications.py

"""
Push notification senders.

The scheduling core only sees `PushSender.send(token, title, body, data)`
and a `PushResult`. `invalid_token` tells the caller the device token is dead
and should be cleared from the user.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError, InvalidArgumentError, NotFoundError

from barberbook.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    ok: bool
    invalid_token: bool = False
    error: Optional[str] = None


class PushSender:
    def send(self, token: str, title: str, body: str, data: Optional[dict] = None) -> PushResult:
        raise NotImplementedError


class LoggingPushSender(PushSender):
    """Used when push is disabled: records what would have been sent."""

    def send(self, token, title, body, data=None):
        logger.info(f"Push disabled, dropping notification '{title}'")
        return PushResult(ok=True)


def _firebase_app(settings: Settings) -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        if settings.FIREBASE_CREDENTIALS_FILE:
            cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_FILE)
        else:
            cred = credentials.ApplicationDefault()
        app = firebase_admin.initialize_app(cred, {"projectId": settings.FIREBASE_PROJECT_ID})
        logger.info("Firebase Admin initialized")
        return app


class FirebasePushSender(PushSender):
    def __init__(self, settings: Settings):
        self._app = _firebase_app(settings)

    def send(self, token, title, body, data=None):
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            data={key: str(value) for key, value in (data or {}).items()},
            android=messaging.AndroidConfig(priority="high"),
        )
        try:
            response = messaging.send(message, app=self._app)
        except (messaging.UnregisteredError, messaging.SenderIdMismatchError, NotFoundError) as e:
            logger.warning(f"Push token rejected: {e}")
            return PushResult(ok=False, invalid_token=True, error=str(e))
        except InvalidArgumentError as e:
            # a malformed token is reported as an invalid argument
            logger.warning(f"Push rejected as invalid: {e}")
            return PushResult(ok=False, invalid_token=True, error=str(e))
        except FirebaseError as e:
            logger.error(f"Push error: {e}")
            return PushResult(ok=False, error=str(e))

        logger.info(f"Push sent: {response}")
        return PushResult(ok=True)


@lru_cache
def _default_sender() -> PushSender:
    settings = get_settings()
    if settings.PUSH_ENABLED:
        return FirebasePushSender(settings)
    return LoggingPushSender()


# Dependency: overridden in tests with a recording double
def get_push_sender() -> PushSender:
    return _default_sender()
