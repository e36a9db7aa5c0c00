"""Tests for the JSON error envelope and bearer authentication."""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

from storefront.api import register_exception_handlers
from storefront.api.auth import Principal, create_token, get_current_user, require_admin
from storefront.config import override_settings


@pytest.fixture()
def sample_app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database exploded")

    @app.get("/invalid")
    async def invalid():
        raise ValidationError({"quantity": ["Quantity must be greater than 0"]})

    @app.get("/fragment")
    async def fragment():
        raise ValidationError({"state": ["is required"]})

    @app.get("/missing")
    async def missing():
        raise ObjectNotFoundError({"order": ["Order not found"]})

    @app.get("/shipped")
    async def shipped():
        raise InvalidOperationError("Order is already shipped")

    @app.get("/me")
    async def me(user: Principal = Depends(get_current_user)):
        return {"id": user.id, "admin": user.is_admin}

    @app.get("/admin")
    async def admin_only(user: Principal = Depends(require_admin)):
        return {"id": user.id}

    return TestClient(app, raise_server_exceptions=False)


class TestErrorEnvelope:
    def test_validation_errors_carry_field_messages(self, sample_app):
        response = sample_app.get("/invalid")

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Quantity must be greater than 0",
            "errors": {"quantity": ["Quantity must be greater than 0"]},
        }

    def test_fragment_message_names_the_field(self, sample_app):
        response = sample_app.get("/fragment")

        assert response.status_code == 400
        assert response.json()["message"] == "state: is required"

    def test_not_found_uses_raised_payload(self, sample_app):
        response = sample_app.get("/missing")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Order not found",
            "errors": {"order": ["Order not found"]},
        }

    def test_invalid_operation_uses_raised_message(self, sample_app):
        response = sample_app.get("/shipped")

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Order is already shipped"}

    def test_unhandled_error_in_development(self, sample_app):
        response = sample_app.get("/boom")

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "database exploded"}

    def test_unhandled_error_is_hidden_in_production(self, sample_app):
        override_settings(environment="production")

        response = sample_app.get("/boom")

        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"


class TestBearerAuth:
    def test_valid_token(self, sample_app):
        token = create_token("user-001", email="asha@example.com")

        response = sample_app.get("/me", headers={"Authorization": f"Bearer {token}"})

        assert response.json() == {"id": "user-001", "admin": False}

    def test_wrong_scheme(self, sample_app):
        token = create_token("user-001")

        response = sample_app.get("/me", headers={"Authorization": f"Basic {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid Authorization header"

    def test_expired_token(self, sample_app):
        token = create_token("user-001", expires_minutes=-5)

        response = sample_app.get("/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, token failed"

    def test_token_signed_with_another_secret(self, sample_app):
        token = create_token("user-001")
        override_settings(jwt_secret="rotated-secret")

        response = sample_app.get("/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_admin_email_allowlist_is_case_insensitive(self, sample_app):
        override_settings(admin_emails=frozenset({"ops@example.com"}))
        token = create_token("admin-002", email="Ops@Example.com")

        response = sample_app.get("/admin", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200

    def test_admin_role(self, sample_app):
        token = create_token("admin-001", roles=["admin"])

        response = sample_app.get("/me", headers={"Authorization": f"Bearer {token}"})
        assert response.json()["admin"] is True
