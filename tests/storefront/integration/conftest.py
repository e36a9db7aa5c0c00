import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from storefront.api import (
    cart_router,
    checkout_router,
    order_router,
    payment_router,
    register_exception_handlers,
)
from storefront.api.auth import create_token


@pytest.fixture()
def client():
    app = FastAPI()
    for router in (cart_router, checkout_router, order_router, payment_router):
        app.include_router(router, prefix="/api")
    register_exception_handlers(app)
    return TestClient(app)


def bearer(user_id, email=None, roles=None):
    return {"Authorization": f"Bearer {create_token(user_id, email=email, roles=roles)}"}


@pytest.fixture()
def customer():
    return bearer("user-001", email="asha@example.com")


@pytest.fixture()
def other_customer():
    return bearer("user-002", email="ravi@example.com")


@pytest.fixture()
def admin():
    return bearer("admin-001", email="ops@example.com", roles=["admin"])


@pytest.fixture()
def api_address():
    return {
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "zipCode": "560001",
        "country": "India",
    }
