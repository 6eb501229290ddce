import os
import tempfile
from decimal import Decimal

# Set environment variables BEFORE any imports that might use settings
# Use a temporary directory for test database to avoid permission issues
_test_db_dir = tempfile.mkdtemp()
_test_db_path = os.path.join(_test_db_dir, "test_portfolio.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_test_db_path}"
os.environ["SECRET_KEY"] = "test-secret-key-min-32-characters-long-for-testing"
os.environ["ALGORITHM"] = "HS256"
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "30"
os.environ["COMMAND_WORKER_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session

from portfolio.main import app
from portfolio.core.security import PRODUCT_MANAGEMENT, create_access_token


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test and run migrations."""
    temp_db_dir = tempfile.mkdtemp()
    test_db_path = os.path.join(temp_db_dir, "test.db")
    test_db_url = f"sqlite:///{test_db_path}"

    test_engine = create_engine(
        test_db_url,
        connect_args={"check_same_thread": False},
        poolclass=None,  # Don't use connection pooling for SQLite
    )

    # Enable WAL mode to reduce locking issues
    @event.listens_for(test_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )

    # Run Alembic migrations to set up the database schema
    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", test_db_url)
    command.upgrade(alembic_cfg, "head")

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        test_engine.dispose()

        # Clean up - remove test database file, WAL files and directory
        for path in [test_db_path, f"{test_db_path}-wal", f"{test_db_path}-shm"]:
            if os.path.exists(path):
                os.remove(path)
        if os.path.exists(temp_db_dir):
            os.rmdir(temp_db_dir)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database dependency override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    from portfolio.api.deps import get_db

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session to match test naming conventions."""
    return db_session


@pytest.fixture(scope="function")
def product(db: Session):
    """Register product P1 in the product registry."""
    from portfolio.repositories.product import create_product

    return create_product(db, identifier="P1", name="Personal loan")


@pytest.fixture(scope="function")
def product_manager_token() -> str:
    """Get JWT token for a caller allowed to manage products."""
    return create_access_token(
        data={"sub": "product-manager", "permissions": [PRODUCT_MANAGEMENT]}
    )


@pytest.fixture(scope="function")
def auth_headers(product_manager_token: str) -> dict:
    return {"Authorization": f"Bearer {product_manager_token}"}


@pytest.fixture(scope="function")
def charge_definition_body():
    """Build a charge definition request body (camelCase, as sent over the wire)."""

    def _make(identifier: str, **overrides) -> dict:
        body = {
            "identifier": identifier,
            "name": f"Charge {identifier}",
            "description": "Fee charged on disbursement",
            "chargeAction": "DISBURSE",
            "amount": "25.50",
            "chargeMethod": "FIXED",
            "fromAccountDesignator": "customer-loan",
            "toAccountDesignator": "processing-fee-income",
            "readOnly": False,
        }
        body.update(overrides)
        return body

    return _make


@pytest.fixture(scope="function")
def add_charge_definition(db: Session, product):
    """Insert a charge definition directly into the store, bypassing the API."""
    from portfolio.repositories.charge_definition import create_charge_definition

    def _add(identifier: str, read_only: bool = False, **fields):
        values = {
            "name": f"Charge {identifier}",
            "charge_action": "DISBURSE",
            "amount": Decimal("25.50"),
            "charge_method": "FIXED",
        }
        values.update(fields)
        return create_charge_definition(
            db,
            product_id=product.id,
            identifier=identifier,
            read_only=read_only,
            **values,
        )

    return _add
