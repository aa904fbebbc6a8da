import os
import sys
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

# Settings are read on import; keep telemetry off and the database in memory
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_REQUEST_LOGGING"] = "false"
os.environ["ENABLE_OUTBOUND_LOGGING"] = "false"

# Ensure project root is on sys.path for 'household' and 'main' imports
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import random

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from household.db.base_class import Base
from household.db import base as models_import  # noqa: F401 - ensure models are imported
from household.db.models.user import User
from household.db.models.shared_settings import SharedSettings
from household.core.security import create_access_token
from household.repositories.user import UserRepository
from household.repositories.shared_settings import SharedSettingsRepository
from household.repositories.partner_invite import PartnerInviteRepository
from household.services.invite_services import InviteService
from household.services.notification_services import NotificationService
from household.services.orphan_services import OrphanRecoveryService
from household.services.partnership_services import PartnershipService
from household.services.settings_services import SettingsService


class Outbox:
    """Email sender that keeps messages instead of delivering them."""

    def __init__(self):
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)

    def templates(self):
        return [m.template for m in self.messages]


class FrozenClock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def engine():
    # One shared connection so every session sees the same in-memory database
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def make_user(db):
    """Create a user together with its shared settings row."""

    def _make(
        name,
        persona=None,
        primary=None,
        group_id=None,
        group_name=None,
        currency=None,
        ratio=None,
        emoji="✅",
        onboarding_complete=False,
        email=None,
    ):
        user = User(
            email=email or f"{name.lower()}@example.com",
            name=name,
            hashed_password="x",
            persona=persona,
            primary_user_id=primary.id if primary is not None else None,
            onboarding_step=7 if onboarding_complete else 1,
            onboarding_complete=onboarding_complete,
        )
        db.add(user)
        db.flush()
        db.add(SharedSettings(
            user_id=user.id,
            group_id=group_id,
            group_name=group_name,
            currency_code=currency,
            default_split_ratio=ratio,
            emoji=emoji,
        ))
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def services(db, outbox, clock):
    """Services wired against the test session, a capturing outbox and a frozen clock."""
    repos = dict(
        user_repo=UserRepository(db),
        settings_repo=SharedSettingsRepository(db),
        invite_repo=PartnerInviteRepository(db),
    )
    notifier = NotificationService(sender=outbox)
    rng = random.Random(7)
    invites = InviteService(notifier=notifier, clock=clock, rng=rng, **repos)
    return SimpleNamespace(
        repos=SimpleNamespace(**repos),
        invites=invites,
        partnership=PartnershipService(notifier=notifier, invite_ledger=invites, **repos),
        settings=SettingsService(notifier=notifier, invite_ledger=invites, clock=clock, rng=rng, **repos),
        orphans=OrphanRecoveryService(user_repo=repos["user_repo"], settings_repo=repos["settings_repo"]),
    )


def settings_of(db, user):
    db.expire_all()
    return db.query(SharedSettings).filter(SharedSettings.user_id == user.id).first()


def reload(db, user):
    db.expire_all()
    return db.get(User, user.id)


@pytest.fixture
def client(session_factory, outbox):
    from main import app
    from household.api.dependencies.database import get_db
    from household.api.dependencies.services import get_email_sender

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_email_sender] = lambda: outbox

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}
