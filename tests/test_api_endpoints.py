"""
Flask API endpoint tests: ledger writes behind JWT, public reads, traceability.
"""

import pytest

from conftest import ADMIN, FARM, PROCESSING_UNIT, RETAILER, STRANGER, WAREHOUSE


class TestHealthEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.get_json()
        assert data["ok"] is True
        assert data["service"] == "agrichain-ledger"
        assert data["productCounter"] == 0


class TestActorEndpoints:

    def test_claim_requires_jwt(self, client):
        response = client.post("/api/ledger/actors/claim/warehouse", json={"name": "WH", "phone": "1"})
        assert response.status_code == 401

    def test_claim_role(self, client, auth_headers):
        response = client.post(
            "/api/ledger/actors/claim/collection-point",
            json={"name": "Hill CP", "phone": "98", "location": "Ooty"},
            headers=auth_headers(STRANGER),
        )
        assert response.status_code == 201
        actor = response.get_json()["actor"]
        assert actor["address"] == STRANGER
        assert actor["roleName"] == "Collection Point"

    def test_claim_twice(self, client, auth_headers):
        response = client.post(
            "/api/ledger/actors/claim/retailer",
            json={"name": "Again", "phone": "1"},
            headers=auth_headers(WAREHOUSE),
        )
        assert response.status_code == 409
        assert response.get_json()["err"] == "already_registered"

    def test_farm_slug_does_not_exist(self, client, auth_headers):
        response = client.post(
            "/api/ledger/actors/claim/farm",
            json={"name": "Self Farm", "phone": "1"},
            headers=auth_headers(STRANGER),
        )
        assert response.status_code == 404

    def test_blank_name_rejected(self, client, auth_headers):
        response = client.post(
            "/api/ledger/actors/claim/warehouse",
            json={"name": "   ", "phone": "1"},
            headers=auth_headers(STRANGER),
        )
        assert response.status_code == 400
        assert response.get_json()["err"] == "invalid_argument"

    def test_admin_adds_farm(self, client, auth_headers):
        body = {"farmAddress": STRANGER.lower(), "name": "Hill Farm", "phone": "5"}
        response = client.post("/api/ledger/actors/farms", json=body, headers=auth_headers(ADMIN))
        assert response.status_code == 201
        assert response.get_json()["actor"]["address"] == STRANGER

        denied = client.post("/api/ledger/actors/farms", json=body, headers=auth_headers(WAREHOUSE))
        assert denied.status_code == 403

    def test_actor_profile_is_public(self, client):
        data = client.get(f"/api/ledger/actors/{FARM}").get_json()
        assert data["actor"]["name"] == "Green Acres"

        unknown = client.get(f"/api/ledger/actors/{STRANGER}").get_json()
        assert unknown["actor"]["isRegistered"] is False

    def test_bad_address(self, client):
        response = client.get("/api/ledger/actors/nope")
        assert response.status_code == 400


class TestProductEndpoints:

    @pytest.fixture
    def harvested(self, client, auth_headers):
        response = client.post(
            "/api/ledger/products",
            json={"name": "Paddy", "quantity": 500, "unit": "kg"},
            headers=auth_headers(FARM),
        )
        assert response.status_code == 201
        return response.get_json()["product"]

    def test_create_product(self, harvested):
        assert harvested["productId"] == 1
        assert harvested["currentState"] == 0
        assert harvested["stateName"] == "AT_FARM"
        assert harvested["history"][0]["actorRole"] == 1

    def test_non_farm_cannot_create(self, client, auth_headers):
        response = client.post(
            "/api/ledger/products",
            json={"name": "Paddy", "quantity": 5},
            headers=auth_headers(RETAILER),
        )
        assert response.status_code == 403
        assert response.get_json()["err"] == "unauthorized"

    def test_quantity_too_large_to_store(self, client, auth_headers):
        response = client.post(
            "/api/ledger/products",
            json={"name": "Paddy", "quantity": 2**63},
            headers=auth_headers(FARM),
        )
        assert response.status_code == 400
        assert response.get_json()["err"] == "invalid_argument"
        assert client.get("/api/ledger/products/counter").get_json()["productCounter"] == 0

    def test_ship_receive_flow(self, client, auth_headers, harvested):
        shipped = client.post(
            "/api/ledger/products/1/ship",
            json={"quantity": 200, "destinationAddress": WAREHOUSE},
            headers=auth_headers(FARM),
        )
        assert shipped.status_code == 201
        child = shipped.get_json()["product"]
        assert child["productId"] == 2
        assert child["stateName"] == "IN_TRANSIT"

        incoming = client.get("/api/ledger/incoming", headers=auth_headers(WAREHOUSE)).get_json()
        assert [p["productId"] for p in incoming["items"]] == [2]

        wrong = client.post("/api/ledger/products/2/receive", headers=auth_headers(RETAILER))
        assert wrong.status_code == 403

        received = client.post("/api/ledger/products/2/receive", headers=auth_headers(WAREHOUSE))
        assert received.status_code == 200
        assert received.get_json()["product"]["currentOwner"] == WAREHOUSE

        shipped_tab = client.get("/api/ledger/shipped", headers=auth_headers(FARM)).get_json()
        assert [p["productId"] for p in shipped_tab["items"]] == [2]

    def test_oversized_shipment(self, client, auth_headers, harvested):
        response = client.post(
            "/api/ledger/products/1/ship",
            json={"quantity": 9999, "destinationAddress": WAREHOUSE},
            headers=auth_headers(FARM),
        )
        assert response.status_code == 409
        assert response.get_json()["err"] == "insufficient_quantity"
        assert client.get("/api/ledger/products/1").get_json()["product"]["quantity"] == 500

    def test_invalid_destination(self, client, auth_headers, harvested):
        response = client.post(
            "/api/ledger/products/1/ship",
            json={"quantity": 5, "destinationAddress": ADMIN},
            headers=auth_headers(FARM),
        )
        assert response.status_code == 422

    def test_process_recipe_and_sell(self, client, auth_headers, harvested):
        farm, pu, rt = auth_headers(FARM), auth_headers(PROCESSING_UNIT), auth_headers(RETAILER)

        client.post("/api/ledger/products/1/ship", json={"quantity": 100, "destinationAddress": PROCESSING_UNIT}, headers=farm)
        client.post("/api/ledger/products/2/receive", headers=pu)

        processed = client.post(
            "/api/ledger/products/2/process",
            json={"quantityToProcess": 40, "newName": "Rice", "newQuantity": 26},
            headers=pu,
        )
        assert processed.status_code == 201
        assert processed.get_json()["product"]["productId"] == 3

        recipe = client.post(
            "/api/ledger/products/recipe",
            json={
                "ingredientIds": [2, 3],
                "quantitiesToUse": [60, 26],
                "outputName": "Rice Flakes",
                "outputQuantity": 70,
            },
            headers=pu,
        )
        assert recipe.status_code == 201
        blend = recipe.get_json()["product"]
        assert blend["parentProductId"] == 0
        assert blend["parentIds"] == [2, 3]

        client.post("/api/ledger/products/4/ship", json={"quantity": 70, "destinationAddress": RETAILER}, headers=pu)
        client.post("/api/ledger/products/5/receive", headers=rt)

        sold = client.post("/api/ledger/products/5/sell", json={"quantity": 70}, headers=rt)
        assert sold.status_code == 201
        data = sold.get_json()
        assert data["sold"]["stateName"] == "SOLD"
        assert data["product"]["stateName"] == "SOLD"
        assert data["product"]["quantity"] == 0

    def test_recipe_length_mismatch(self, client, auth_headers):
        response = client.post(
            "/api/ledger/products/recipe",
            json={"ingredientIds": [1, 2], "quantitiesToUse": [1], "outputName": "X", "outputQuantity": 1},
            headers=auth_headers(PROCESSING_UNIT),
        )
        assert response.status_code == 400

    def test_zero_record_for_unknown_id(self, client):
        data = client.get("/api/ledger/products/77").get_json()
        assert data["ok"] is True
        assert data["product"]["productId"] == 0

    def test_counter_and_listing(self, client, harvested):
        assert client.get("/api/ledger/products/counter").get_json()["productCounter"] == 1

        items = client.get(f"/api/ledger/products?owner={FARM}&state=0&inStock=1").get_json()["items"]
        assert [p["productId"] for p in items] == [1]

        assert client.get("/api/ledger/products?state=42").status_code == 400


class TestTraceabilityEndpoints:

    def test_trace(self, client, auth_headers):
        client.post("/api/ledger/products", json={"name": "Paddy", "quantity": 10}, headers=auth_headers(FARM))
        response = client.get("/api/trace/1")
        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["timeline"][0]["details"] == "Harvested 10 kg"
        assert data["timeline"][0]["actorName"] == "Green Acres"
        assert data["publicUrl"] == "https://trace.agrichain.test/scan-product?id=1"

    def test_trace_not_found(self, client):
        response = client.get("/api/trace/5")
        assert response.status_code == 404
        assert response.get_json()["message"] == "Product with ID #5 not found."

    def test_qr(self, client, auth_headers):
        client.post("/api/ledger/products", json={"name": "Paddy", "quantity": 10}, headers=auth_headers(FARM))
        response = client.get("/api/trace/1/qr")
        assert response.status_code == 200
        assert response.mimetype == "image/png"
        assert response.data[:8] == b"\x89PNG\r\n\x1a\n"

        assert client.get("/api/trace/2/qr").status_code == 404


class TestDirectoryEndpoints:

    def test_directory_without_mongo_is_empty(self, client):
        response = client.get("/api/actors?role=Warehouse")
        assert response.status_code == 200
        assert response.get_json() == {"actors": []}

    def test_resolve_requires_params(self, client):
        assert client.get("/api/actors/resolve?role=Warehouse").status_code == 400
        assert client.get("/api/actors/resolve?role=Warehouse&name=Central").status_code == 404
