"""Integration tests for standardized error responses."""

from unittest.mock import patch

import pytest
from django.db import DatabaseError

from modules.cart.repositories.django_repository import CartDjangoSource
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.integration


def _assert_standard_shape(data):
    assert set(data) >= {"type", "errors"}
    assert isinstance(data["errors"], list)
    assert data["errors"]
    for error in data["errors"]:
        assert set(error) == {"code", "detail", "attr"}


class TestStandardizedErrors:
    def test_authentication_error(self, api_client):
        response = api_client.get("/api/v1/orders/")

        assert response.status_code == 401
        data = response.json()
        _assert_standard_shape(data)
        assert data["type"] == "client_error"
        assert "error_code" not in data

    def test_malformed_json(self, auth_client):
        response = auth_client.post(
            "/api/v1/orders/", data="{", content_type="application/json"
        )

        assert response.status_code == 400
        data = response.json()
        _assert_standard_shape(data)
        assert data["type"] == "validation_error"

    def test_field_errors_carry_attr(self, auth_client):
        response = auth_client.post("/api/v1/cart/", {}, format="json")

        assert response.status_code == 400
        data = response.json()
        _assert_standard_shape(data)
        assert data["errors"][0]["attr"] == "product_id"
        assert data["errors"][0]["code"] == "required"

    def test_domain_error(self, auth_client):
        response = auth_client.get("/api/v1/orders/0/")

        assert response.status_code == 400
        data = response.json()
        _assert_standard_shape(data)
        assert data["type"] == "validation_error"
        assert data["error_code"] == "INVALID_ORDER_ID"
        assert data["errors"][0]["code"] == "INVALID_ORDER_ID"

    def test_conflict_is_a_client_error(self, auth_client, shipping_address):
        response = auth_client.post(
            "/api/v1/orders/",
            {"shipping_method": "standard", "shipping_address": shipping_address},
            format="json",
        )

        data = response.json()
        assert data["type"] == "client_error"
        assert data["error_code"] == "EMPTY_CART"

    def test_database_error_inside_service(self, auth_client):
        with patch.object(
            OrderDjangoRepository,
            "list_for_principal",
            side_effect=DatabaseError("relation does not exist"),
        ):
            response = auth_client.get("/api/v1/orders/")

        assert response.status_code == 500
        data = response.json()
        assert data["type"] == "server_error"
        assert data["error_code"] == "DATABASE_ERROR"
        assert "relation does not exist" not in data["errors"][0]["detail"]

    def test_database_error_escaping_a_view(self, auth_client):
        with patch.object(
            CartDjangoSource, "get_items", side_effect=DatabaseError("boom")
        ):
            response = auth_client.get("/api/v1/cart/")

        assert response.status_code == 500
        data = response.json()
        assert data["error_code"] == "DATABASE_ERROR"
        assert "boom" not in data["errors"][0]["detail"]
