"""
HTTP scenarios for the menu and auth endpoints.
"""

import pytest
from fastapi.testclient import TestClient

JOLLOF = {"name": "Jollof Rice", "price": 2500, "category": "SPECIAL"}


class TestMenuLifecycle:

    def test_create_filter_delete_scenario(self, test_client: TestClient, admin_headers):
        created = test_client.post("/api/v1/menu", json=JOLLOF, headers=admin_headers)
        assert created.status_code == 201
        body = created.json()
        assert body["success"] is True
        assert body["message"] == "Menu item created successfully"
        item = body["data"]
        assert item["name"] == "Jollof Rice"
        assert item["isAvailable"] is True
        assert len(item["id"]) == 24

        listed = test_client.get(
            "/api/v1/menu",
            params={"category": "special", "minPrice": "1000", "maxPrice": "3000"},
        )
        assert listed.status_code == 200
        assert [i["id"] for i in listed.json()["data"]] == [item["id"]]

        deleted = test_client.delete(f"/api/v1/menu/{item['id']}", headers=admin_headers)
        assert deleted.status_code == 200
        assert deleted.json()["data"]["id"] == item["id"]

        missing = test_client.get(f"/api/v1/menu/{item['id']}")
        assert missing.status_code == 404
        assert missing.json() == {"success": False, "message": "Menu item not found"}

    def test_regular_user_cannot_create(self, test_client: TestClient, user_headers, admin_headers):
        denied = test_client.post("/api/v1/menu", json=JOLLOF, headers=user_headers)
        assert denied.status_code == 403
        assert denied.json()["message"] == "Access denied. Insufficient permissions."

        allowed = test_client.post("/api/v1/menu", json=JOLLOF, headers=admin_headers)
        assert allowed.status_code == 201

    def test_missing_token(self, test_client: TestClient):
        response = test_client.post("/api/v1/menu", json=JOLLOF)

        assert response.status_code == 401
        assert response.json()["message"] == "Access denied. No token provided"

    def test_garbage_token(self, test_client: TestClient):
        response = test_client.post(
            "/api/v1/menu", json=JOLLOF, headers={"Authorization": "Bearer not.a.token"}
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Invalid token"

    def test_create_validation_errors(self, test_client: TestClient, admin_headers):
        response = test_client.post(
            "/api/v1/menu",
            json={"name": "X", "price": -5, "category": "LUNCH"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert len(body["errors"]) == 3

    def test_duplicate_name(self, test_client: TestClient, admin_headers):
        test_client.post("/api/v1/menu", json=JOLLOF, headers=admin_headers)

        response = test_client.post("/api/v1/menu", json=JOLLOF, headers=admin_headers)

        assert response.status_code == 409

    def test_update(self, test_client: TestClient, admin_headers):
        item = test_client.post("/api/v1/menu", json=JOLLOF, headers=admin_headers).json()["data"]

        response = test_client.put(
            f"/api/v1/menu/{item['id']}",
            json={"price": 2800, "isAvailable": False, "id": "000000000000000000000000"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        updated = response.json()["data"]
        assert updated["id"] == item["id"]
        assert updated["price"] == 2800
        assert updated["isAvailable"] is False

    def test_update_unknown_field_rejected(self, test_client: TestClient, admin_headers):
        item = test_client.post("/api/v1/menu", json=JOLLOF, headers=admin_headers).json()["data"]

        response = test_client.put(
            f"/api/v1/menu/{item['id']}", json={"chefNotes": "extra spicy"}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["errors"] == ["chefNotes: Extra inputs are not permitted"]

    def test_invalid_id(self, test_client: TestClient):
        response = test_client.get("/api/v1/menu/123")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid menu item ID"


class TestMenuListing:

    def seed(self, client, headers):
        for payload in (
            {"name": "Jollof Rice", "price": 2500, "category": "special", "description": "Smoky rice"},
            {"name": "Egusi Soup", "price": 3200, "category": "SOUPS & SWALLOW"},
            {"name": "Zobo", "price": 400, "category": "BEVERAGE"},
        ):
            assert client.post("/api/v1/menu", json=payload, headers=headers).status_code == 201

    def test_search_with_meta(self, test_client: TestClient, admin_headers):
        self.seed(test_client, admin_headers)

        body = test_client.get("/api/v1/menu", params={"q": "rice", "includeMeta": "true"}).json()

        assert [i["name"] for i in body["data"]] == ["Jollof Rice"]
        assert body["searchInfo"] == {"query": "rice", "resultsFound": 1}
        assert body["metadata"]["categories"] == ["BEVERAGE", "SOUPS & SWALLOW", "SPECIAL"]
        assert body["metadata"]["priceRange"]["maxPrice"] == 3200

    def test_limit_is_clamped(self, test_client: TestClient, admin_headers):
        self.seed(test_client, admin_headers)

        body = test_client.get("/api/v1/menu", params={"limit": "500", "page": "-2"}).json()

        assert body["pagination"]["itemsPerPage"] == 50
        assert body["pagination"]["currentPage"] == 1
        assert body["pagination"]["totalItems"] == 3

    @pytest.mark.parametrize("bound", ["nan", "inf", "-Infinity"])
    def test_non_finite_price_bound_rejected(self, test_client: TestClient, admin_headers, bound):
        self.seed(test_client, admin_headers)

        response = test_client.get("/api/v1/menu", params={"minPrice": bound, "maxPrice": bound})

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    def test_filters_echo_query_strings(self, test_client: TestClient, admin_headers):
        self.seed(test_client, admin_headers)

        body = test_client.get(
            "/api/v1/menu",
            params={"isAvailable": "true", "minPrice": "100", "maxPrice": "3000.50", "sortBy": "price"},
        ).json()

        assert body["filters"] == {
            "category": None,
            "isAvailable": "true",
            "minPrice": "100",
            "maxPrice": "3000.50",
            "sortBy": "price",
            "sortOrder": "desc",
        }
        assert {i["name"] for i in body["data"]} == {"Jollof Rice", "Zobo"}

    def test_categories_and_price_range(self, test_client: TestClient, admin_headers):
        self.seed(test_client, admin_headers)

        categories = test_client.get("/api/v1/menu/categories").json()
        prices = test_client.get("/api/v1/menu/price-range").json()

        assert categories == {"success": True, "data": ["BEVERAGE", "SOUPS & SWALLOW", "SPECIAL"]}
        assert prices == {
            "success": True,
            "data": {"minPrice": 400, "maxPrice": 3200, "avgPrice": 2033.33},
        }

    def test_empty_catalog_price_range(self, test_client: TestClient):
        body = test_client.get("/api/v1/menu/price-range").json()

        assert body["data"] == {"minPrice": 0, "maxPrice": 0, "avgPrice": 0}


class TestAuthEndpoints:

    def test_register_login_profile(self, test_client: TestClient):
        registered = test_client.post(
            "/api/v1/auth/register",
            json={
                "name": "Ada Obi",
                "email": "ada@example.com",
                "phoneNumber": "+2348012345678",
                "password": "s3cret-pass",
            },
        )
        assert registered.status_code == 201
        assert registered.json()["message"] == "User registered successfully"
        assert "passwordHash" not in registered.json()["user"]

        login = test_client.post(
            "/api/v1/auth/login", json={"email": "ada@example.com", "password": "s3cret-pass"}
        )
        assert login.status_code == 200
        token = login.json()["token"]

        profile = test_client.get("/api/v1/auth/profile", headers={"Authorization": f"Bearer {token}"})
        assert profile.status_code == 200
        user = profile.json()["user"]
        assert user["email"] == "ada@example.com"
        assert user["phoneNumber"] == "+2348012345678"
        assert user["lastLogin"] is not None
        assert "passwordHash" not in user

    def test_register_missing_fields(self, test_client: TestClient):
        response = test_client.post("/api/v1/auth/register", json={"name": "Ada"})

        assert response.status_code == 400
        assert response.json()["errors"] == [
            "email is required",
            "phoneNumber is required",
            "password is required",
        ]

    def test_bad_login(self, test_client: TestClient):
        response = test_client.post(
            "/api/v1/auth/login", json={"email": "nobody@example.com", "password": "whatever"}
        )

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid email or password"}

    def test_profile_requires_token(self, test_client: TestClient):
        assert test_client.get("/api/v1/auth/profile").status_code == 401

    def test_admin_create_requires_admin(self, test_client: TestClient, user_headers, admin_headers):
        payload = {
            "name": "Second Admin",
            "email": "second@example.com",
            "phoneNumber": "+2348000000002",
            "password": "admin-pass-2",
        }

        assert test_client.post("/api/v1/auth/admin/create", json=payload, headers=user_headers).status_code == 403

        response = test_client.post("/api/v1/auth/admin/create", json=payload, headers=admin_headers)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Admin created successfully"
        assert body["user"]["role"] == "admin"
        assert "token" not in body
