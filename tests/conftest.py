"""Shared test fixtures for all test modules."""

import contextlib
import uuid
from collections.abc import Iterator
from typing import Any
from unittest.mock import MagicMock, patch
from urllib.parse import urlencode

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import shulpay.models  # noqa: F401
from shulpay.core import database as db_module
from shulpay.core.database import Base
from shulpay.models.member import Member
from shulpay.models.processor import Processor
from shulpay.models.shul import Shul
from shulpay.models.user_role import UserRole
from shulpay.repositories.processor_repository import ProcessorRepository
from shulpay.schemas.processor import ProcessorCreate, ProcessorCredentialsInput

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

# Well-known ids used across all tests
DEFAULT_SHUL_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
DEFAULT_PERSON_ID = uuid.UUID("00000000-0000-0000-0000-0000000000a1")
DEFAULT_USER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000f1")

GATEWAY_CLIENT = "shulpay.services.gateways.cardknox.httpx.Client"


def _seed_defaults(session: Session) -> None:
    """Insert the default shul, a member with an email, and an admin role."""
    if session.query(Shul).filter(Shul.id == DEFAULT_SHUL_ID).first() is None:
        session.add(
            Shul(
                id=DEFAULT_SHUL_ID,
                name="Congregation Beth Test",
                slug="beth-test",
                email="office@beth-test.org",
            )
        )
        session.add(
            Member(
                id=DEFAULT_PERSON_ID,
                shul_id=DEFAULT_SHUL_ID,
                first_name="Moshe",
                last_name="Levi",
                email="moshe@example.com",
                phone="555-0100",
                address="1 Main St",
                city="Lakewood",
                state="NJ",
                zip="08701",
            )
        )
        session.add(UserRole(user_id=DEFAULT_USER_ID, shul_id=DEFAULT_SHUL_ID, role="admin"))
        session.commit()


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    session = _TestSessionLocal()
    try:
        _seed_defaults(session)
    finally:
        session.close()

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for testing."""
    gen = db_module.get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


def create_processor(
    db: Session,
    shul_id: uuid.UUID = DEFAULT_SHUL_ID,
    name: str = "Main Cardknox",
    is_active: bool = True,
    is_default: bool = False,
    with_credentials: bool = True,
    **credentials: Any,
) -> Processor:
    creds = None
    if with_credentials:
        values = {
            "transaction_key": "txn_key_secret",
            "recurring_key": "recurring_key_secret",
            "ifields_key": "ifields_public_key",
        }
        values.update(credentials)
        creds = ProcessorCredentialsInput(**values)
    return ProcessorRepository(db).create(
        ProcessorCreate(
            name=name,
            is_active=is_active,
            is_default=is_default,
            credentials=creds,
        ),
        shul_id,
    )


def create_member(
    db: Session,
    shul_id: uuid.UUID = DEFAULT_SHUL_ID,
    first_name: str = "Sarah",
    last_name: str = "Cohen",
    email: str | None = "sarah@example.com",
) -> Member:
    member = Member(shul_id=shul_id, first_name=first_name, last_name=last_name, email=email)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def sale_response(**fields: str) -> MagicMock:
    """Fake transaction API reply with a URL-encoded body."""
    response = MagicMock()
    response.status_code = 200
    response.text = urlencode(fields)
    return response


def json_response(data: dict[str, Any], status_code: int = 200) -> MagicMock:
    """Fake recurring API reply with a JSON body."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data
    return response


@contextlib.contextmanager
def mock_gateway_http(*responses: Any) -> Iterator[MagicMock]:
    """Patch the gateway's httpx client; each post returns (or raises) the next item."""
    with patch(GATEWAY_CLIENT) as mock_client_cls:
        mock_client = MagicMock()
        mock_client.__enter__ = MagicMock(return_value=mock_client)
        mock_client.__exit__ = MagicMock(return_value=False)
        mock_client.post.side_effect = list(responses)
        mock_client_cls.return_value = mock_client
        yield mock_client
