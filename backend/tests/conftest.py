"""
Shared test fixtures for FactoryOps tests

Provides database setup, client creation, and material fixtures
"""
import os

# Settings are cached on first import; point them at SQLite before that
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("INVENTORY_POSTER", "ledger")
os.environ.setdefault("QC_OUT_OF_RANGE_POLICY", "reject")

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from factoryops.main import app
from factoryops.db.base import Base
from factoryops.db.session import get_db


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite defers BEGIN on its own, which breaks SAVEPOINT; emit it ourselves
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    # Import all models to ensure they're registered with Base
    from factoryops.models import (  # noqa: F401
        RawMaterial, InventoryTransaction, PurchaseOrder, PurchaseOrderLine,
        GoodsReceipt, GoodsReceiptLine, PurchaseReturn, PurchasingEvent,
    )

    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    create_tables(engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables(engine)


@pytest.fixture
def client(db_session):
    """Create a test client with database override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_material(db_session):
    """Create a sample raw material"""
    from factoryops.models.inventory import RawMaterial

    material = RawMaterial(
        code="RM-STEEL-ROD",
        name="Steel Rod 12mm",
        unit="KG",
        current_stock=Decimal("0"),
        active=True,
    )
    db_session.add(material)
    db_session.commit()
    db_session.refresh(material)
    return material


@pytest.fixture
def second_material(db_session):
    """Create a second raw material"""
    from factoryops.models.inventory import RawMaterial

    material = RawMaterial(
        code="RM-COPPER-WIRE",
        name="Copper Wire 2mm",
        unit="M",
        current_stock=Decimal("5"),
        active=True,
    )
    db_session.add(material)
    db_session.commit()
    db_session.refresh(material)
    return material
