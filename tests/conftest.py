"""
Test configuration and fixtures.

Every test gets a fresh in-memory SQLite database shared by request sessions
and background jobs (StaticPool keeps a single connection alive).
"""

import os

# Must be set BEFORE barberbook.config is first imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TIMEZONE"] = "UTC"
os.environ["PUSH_ENABLED"] = "false"
os.environ["SIDE_EFFECT_RETRIES"] = "0"

from datetime import timedelta

import pytest
from fastapi import BackgroundTasks
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from barberbook import db
from barberbook.auth import create_access_token
from barberbook.core import utcnow
from barberbook.loyalty import LoyaltyLedger
from barberbook.models import Barbershop, Service, ServicePersonnel, User
from barberbook.notifications import PushResult, PushSender, get_push_sender
from barberbook.side_effects import SideEffectDispatcher


class RecordingPushSender(PushSender):
    """Push double: records every send and answers with a canned result."""

    def __init__(self, result=None):
        self.sent = []
        self.result = result or PushResult(ok=True)

    def send(self, token, title, body, data=None):
        self.sent.append({"token": token, "title": title, "body": body, "data": data})
        return self.result


def run_background(tasks: BackgroundTasks) -> None:
    """Drain queued jobs the way Starlette does after the response."""
    for task in tasks.tasks:
        task.func(*task.args, **task.kwargs)
    tasks.tasks.clear()


@pytest.fixture
def engine():
    engine = db.configure_engine("sqlite://", poolclass=StaticPool)
    db.init_db()
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def push_sender():
    return RecordingPushSender()


@pytest.fixture
def background_tasks():
    return BackgroundTasks()


@pytest.fixture
def dispatcher(background_tasks, push_sender):
    return SideEffectDispatcher(background_tasks, LoyaltyLedger(), push_sender, retries=0)


def make_user(session, email, role="client", first_name="", last_name="", fcm_token=None, barbershop_id=None):
    user = User(
        email=email,
        password_hash="not-used",
        role=role,
        first_name=first_name,
        last_name=last_name,
        fcm_token=fcm_token,
        barbershop_id=barbershop_id,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_service(session, name, barbershop_id, duration=30, price=0, loyalty_points=0, personnel=()):
    service = Service(
        name=name,
        barbershop_id=barbershop_id,
        duration=duration,
        price=price,
        loyalty_points=loyalty_points,
    )
    session.add(service)
    session.commit()
    session.refresh(service)
    for position, person in enumerate(personnel):
        session.add(ServicePersonnel(service_id=service.id, personnel_id=person.id, position=position))
    session.commit()
    return service


@pytest.fixture
def shop(session):
    shop = Barbershop(name="Fade Factory")
    session.add(shop)
    session.commit()
    session.refresh(shop)
    return shop


@pytest.fixture
def other_shop(session):
    shop = Barbershop(name="Sharp Edges")
    session.add(shop)
    session.commit()
    session.refresh(shop)
    return shop


@pytest.fixture
def personnel(session, shop):
    return make_user(
        session, "p1@example.com", role="personnel",
        first_name="Paolo", last_name="Rossi", fcm_token="token-p1", barbershop_id=shop.id,
    )


@pytest.fixture
def other_personnel(session, shop):
    return make_user(
        session, "p2@example.com", role="personnel",
        first_name="Nadia", last_name="Haddad", fcm_token="token-p2", barbershop_id=shop.id,
    )


@pytest.fixture
def client_user(session):
    return make_user(
        session, "client@example.com", first_name="Sam", last_name="Lee", fcm_token="token-client",
    )


@pytest.fixture
def haircut(session, shop, personnel):
    return make_service(session, "Haircut", shop.id, duration=30, price=20, loyalty_points=15, personnel=[personnel])


@pytest.fixture
def beard_trim(session, shop, personnel):
    return make_service(session, "Beard trim", shop.id, duration=15, price=10, personnel=[personnel])


@pytest.fixture
def future_start():
    return (utcnow() + timedelta(days=3)).replace(hour=10, minute=0, second=0, microsecond=0)


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}


@pytest.fixture
def api(engine, push_sender):
    from barberbook.main import app

    app.dependency_overrides[get_push_sender] = lambda: push_sender
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
