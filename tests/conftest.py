import os

# Settings are read at import time; point them at throwaway values first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FIREBASE_PROJECT_ID"] = "agritrack-test"
os.environ.pop("AI_API_KEY", None)
os.environ.pop("OPEN_ROUTER_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from agritrack.database import create_db_and_tables, get_db
from agritrack.main import app
from agritrack.models import Farm, Farmer, Product, Sector, User
from agritrack.security import get_current_user


def seed(session: Session) -> None:
    """Two sectors, two farmers (one linked to a login), three products and two farms."""
    session.add_all(
        [
            Sector(sector_id=1, sector_name="Rice"),
            Sector(sector_id=2, sector_name="Fishery"),
        ]
    )
    session.add_all(
        [
            User(id=1, firebase_uid="admin-uid", email="admin@agritrack.ph", role="admin"),
            User(id=2, firebase_uid="farmer-uid", email="juan@agritrack.ph", role="farmer", sector_id=1),
            User(id=3, firebase_uid="staff-uid", email="staff@agritrack.ph", role="Staff"),
        ]
    )
    session.add_all(
        [
            Farmer(
                id=1,
                name="Juan Dela Cruz",
                firstname="Juan",
                surname="Dela Cruz",
                email="juan@agritrack.ph",
                barangay="San Isidro",
                sector_id=1,
                user_id=2,
            ),
            Farmer(id=2, name="Maria Santos", firstname="Maria", surname="Santos", barangay="Bagumbayan", sector_id=2),
        ]
    )
    session.add_all(
        [
            Product(id=1, name="Corn", sector_id=1),
            Product(id=2, name="Rice", sector_id=1),
            Product(id=3, name="Tilapia", sector_id=2),
        ]
    )
    session.add_all(
        [
            Farm(
                farm_id=1,
                farm_name="North Field",
                vertices=[{"lat": 14.1, "lng": 121.3}],
                parent_barangay="San Isidro",
                sector_id=1,
                farmer_id=1,
                products=[],
                area=2.5,
            ),
            Farm(
                farm_id=2,
                farm_name="Lake Pen",
                vertices=[{"lat": 14.2, "lng": 121.4}],
                parent_barangay="Bagumbayan",
                lake="Laguna de Bay",
                sector_id=2,
                farmer_id=2,
                products=[],
                area=1.0,
            ),
        ]
    )
    session.commit()


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        seed(session)
        yield session


@pytest.fixture(name="admin_user")
def admin_user_fixture(session):
    return session.get(User, 1)


@pytest.fixture(name="farmer_user")
def farmer_user_fixture(session):
    return session.get(User, 2)


@pytest.fixture(name="client")
def client_fixture(session, admin_user):
    """A client authenticated as the admin; use ``login_as`` to switch users."""
    app.dependency_overrides[get_db] = lambda: session
    app.dependency_overrides[get_current_user] = lambda: admin_user
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="login_as")
def login_as_fixture(client):
    def login(user: User) -> None:
        app.dependency_overrides[get_current_user] = lambda: user

    return login
