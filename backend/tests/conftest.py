"""
Test Configuration and Fixtures
Shared testing infrastructure for the inventory API
"""
import os

# Point the application at an in-memory database before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_TO_FILE"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

import pytest
from datetime import date
from decimal import Decimal
from typing import Dict, Generator, List, Tuple
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from inventory_app.main import app
from inventory_app.core.database import Base, engine, get_db
from inventory_app.models.auth import Profile
from inventory_app.models.master_data import (
    CaseType,
    Item,
    PackSize,
    Product,
    ProductType,
    Registrant,
    UnitsOfUnits,
    Warehouse,
)
from inventory_app.schemas.auth import UserCreate, UserRoleName
from inventory_app.schemas.transactions import TransactionCreate
from inventory_app.services.auth_service import AuthService
from inventory_app.services.transactions import TransactionService

# Create test session
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

VIEWER_PASSWORD = "viewerpassword123"
ADMIN_PASSWORD = "adminpassword123"


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
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
def test_user(db_session: Session) -> Profile:
    """Create a viewer"""
    return AuthService(db_session).create_user(UserCreate(
        email="viewer@example.com",
        password=VIEWER_PASSWORD,
        role=UserRoleName.VIEWER,
        name="Test Viewer",
    ))


@pytest.fixture
def admin_user(db_session: Session) -> Profile:
    """Create an admin"""
    return AuthService(db_session).create_user(UserCreate(
        email="admin@example.com",
        password=ADMIN_PASSWORD,
        role=UserRoleName.ADMIN,
        name="Test Admin",
    ))


def _login(client: TestClient, email: str, password: str) -> Dict[str, str]:
    response = client.post("/api/v1/auth/login", data={"username": email, "password": password})
    assert response.status_code == 200
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client: TestClient, test_user: Profile) -> Dict[str, str]:
    """Get authentication headers for the viewer"""
    return _login(client, test_user.email, VIEWER_PASSWORD)


@pytest.fixture
def admin_headers(client: TestClient, admin_user: Profile) -> Dict[str, str]:
    """Get authentication headers for the admin"""
    return _login(client, admin_user.email, ADMIN_PASSWORD)


@pytest.fixture
def master_data(db_session: Session) -> Dict[str, str]:
    """
    Two warehouses and two items

    Widget comes in cases of 4 x 1 gal (uom_per_each 4); Gizmo in single 5 lb bags.
    """
    db_session.add_all([
        Registrant(registrant="Acme"),
        ProductType(product_type="Herbicide"),
        CaseType(package_type="Case"),
        CaseType(package_type="Bag"),
        UnitsOfUnits(units_of_units="gal"),
        UnitsOfUnits(units_of_units="lb"),
    ])
    db_session.flush()
    db_session.add_all([
        Product(product_name="Widget", registrant="Acme", product_type="Herbicide"),
        Product(product_name="Gizmo", registrant="Acme", product_type="Herbicide"),
        PackSize(pack_size="4x1 gal/case", id=1, units_per_each=Decimal("4"),
                 volume_per_unit=Decimal("1"), units_of_units="gal", package_type="Case",
                 uom_per_each=Decimal("4")),
        PackSize(pack_size="5 lb/bag", id=2, units_per_each=Decimal("1"),
                 volume_per_unit=Decimal("5"), units_of_units="lb", package_type="Bag",
                 uom_per_each=Decimal("5")),
        Warehouse(common_name="WH-A", location_id="A1", abbreviation="A"),
        Warehouse(common_name="WH-B", location_id="B1", abbreviation="B"),
    ])
    db_session.flush()
    db_session.add_all([
        Item(item_name="Widget", product_name="Widget", pack_size="4x1 gal/case"),
        Item(item_name="Gizmo", product_name="Gizmo", pack_size="5 lb/bag"),
    ])
    db_session.commit()
    return {"widget": "Widget", "gizmo": "Gizmo", "warehouse_a": "WH-A", "warehouse_b": "WH-B"}


@pytest.fixture
def record_transaction(db_session: Session, master_data):
    """Factory that books a transaction through the service"""
    def _record(
        transaction_type: str,
        transaction_date: date,
        lines: List[Tuple[str, str]],
        status: str,
        warehouse: str = "WH-A",
        inventory_status: str = "Stock",
    ):
        return TransactionService(db_session).create_transaction(TransactionCreate(
            type=transaction_type,
            date=transaction_date,
            warehouse=warehouse,
            status=status,
            inventory_status=inventory_status,
            items=[{"item_name": name, "quantity": quantity} for name, quantity in lines],
        ))
    return _record
