"""Shared fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from orderflow.application.catalog import StaticPriceCatalog
from orderflow.application.order_service import set_price_catalog
from orderflow.application.repository import reset_order_repository
from orderflow.domain import Money
from orderflow.main import app

BRANCH_HEADERS = {"X-User-Id": "usr-1", "X-User-Role": "BRANCH_USER", "X-Branch-Id": "branch-1"}
OTHER_BRANCH_HEADERS = {"X-User-Id": "usr-2", "X-User-Role": "BRANCH_USER", "X-Branch-Id": "branch-2"}
MANAGER_HEADERS = {"X-User-Id": "mgr-1", "X-User-Role": "MANAGER"}


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh repository and a fixed catalog for every test."""
    reset_order_repository()
    set_price_catalog(StaticPriceCatalog({"SKU-001": Money(250), "SKU-002": Money(1000)}))
    yield
    reset_order_repository()
    set_price_catalog(None)


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def created_order(client: TestClient) -> dict:
    """Create an order through the API."""
    response = client.post(
        "/orders",
        json={
            "items": [
                {"sku": "SKU-001", "name": "Widget", "quantity": 50},
                {"sku": "SKU-002", "quantity": 10},
            ],
            "remarks": "Weekly restock",
        },
        headers=BRANCH_HEADERS,
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def approved_order(client: TestClient, created_order: dict) -> dict:
    """Create and approve an order through the API."""
    response = client.post(
        f"/orders/{created_order['id']}/approve",
        json={"items": []},
        headers=MANAGER_HEADERS,
    )
    assert response.status_code == 200
    return response.json()
