import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from app.auth import AuthService
from app.bootstrap import create_super_admin
from app.config import Settings
from app.db import init_db
from app.main import create_app
from app.models import AdminUser, Service, Staff, User


class FakeTimer:
    """Stands in for threading.Timer; tests fire it by hand."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False
        self.daemon = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


class TimerRecorder:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function):
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    def live(self):
        return [t for t in self.timers if t.started and not t.cancelled]


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", secret_key="test-secret", log_level="WARNING")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture
def timers():
    return TimerRecorder()


@pytest.fixture
def auth(settings, timers):
    return AuthService(settings, timer_factory=timers)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(settings, engine, auth):
    app = create_app(settings=settings, engine=engine, auth=auth)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def catalog(session):
    haircut = Service(name="Haircut", category="men", duration_minutes=60, price=300, sort_order=1)
    facial = Service(name="Facial", category="women", duration_minutes=45, price=800, sort_order=2)
    retired = Service(name="Old Perm", duration_minutes=90, price=1000, is_active=False)
    anna = Staff(name="Anna")
    ravi = Staff(name="Ravi")
    session.add_all([haircut, facial, retired, anna, ravi])
    session.commit()
    for row in (haircut, facial, retired, anna, ravi):
        session.refresh(row)
    return {"haircut": haircut, "facial": facial, "retired": retired, "anna": anna, "ravi": ravi}


@pytest.fixture
def super_admin(session, auth):
    return create_super_admin(session, auth, "owner@salon.test", "owner-pass-123", name="Owner")


@pytest.fixture
def make_admin(session, auth):
    def factory(email, role="staff", permissions=None, is_active=True, password="staff-pass-123"):
        user = User(email=email, password_hash=auth.hash_password(password))
        session.add(user)
        session.flush()
        admin = AdminUser(
            user_id=user.id,
            email=email,
            role=role,
            permissions=permissions or {},
            is_active=is_active,
        )
        session.add(admin)
        session.commit()
        session.refresh(admin)
        return admin
    return factory


def _login(client, email, password):
    response = client.post("/auth/login", data={"username": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def login():
    return _login


@pytest.fixture
def owner_headers(client, super_admin):
    return _login(client, "owner@salon.test", "owner-pass-123")
