"""Tests for the order service HTTP API."""

from conftest import ADMIN_TOKEN, CUSTOMER_TOKEN, OTHER_CUSTOMER_TOKEN, address, auth


def order_payload(**overrides) -> dict:
    payload = {
        "items": [
            {"product_id": "prod-pizza", "quantity": 2, "size": "large", "selected_toppings": ["top-olives", "top-cheese"]}
        ],
        "payment_method": "cash",
        "delivery_address": address(),
    }
    payload.update(overrides)
    return payload


def place_order(client, token=CUSTOMER_TOKEN, **overrides) -> dict:
    response = client.post("/api/orders", json=order_payload(**overrides), headers=auth(token))
    assert response.status_code == 201
    return response.json()["data"]["order"]


def test_health_check(test_client):
    """Test the health check endpoint."""
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_readiness_without_kafka(test_client):
    response = test_client.get("/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "kafka": "disabled"}


def test_list_products(test_client):
    response = test_client.get("/api/products", params={"available_only": True})

    assert response.status_code == 200
    assert [p["id"] for p in response.json()["data"]["products"]] == ["prod-pizza"]


def test_get_unknown_product(test_client):
    response = test_client.get("/api/products/nope")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_create_order(test_client):
    response = test_client.post("/api/orders", json=order_payload(), headers=auth(CUSTOMER_TOKEN))

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Order created successfully"
    order = body["data"]["order"]
    assert order["user_id"] == "cust-1"
    assert order["subtotal"] == 5500
    assert order["total"] == 6000
    assert order["order_number"].startswith("SH")


def test_create_order_requires_session(test_client):
    response = test_client.post("/api/orders", json=order_payload())
    assert response.status_code == 401

    response = test_client.post("/api/orders", json=order_payload(), headers=auth("forged"))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_create_order_malformed_body(test_client):
    response = test_client.post("/api/orders", json=order_payload(items=[]), headers=auth(CUSTOMER_TOKEN))

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    assert body["errors"]


def test_create_order_size_unavailable(test_client, service_state):
    items = [{"product_id": "prod-pizza", "quantity": 1, "size": "xl"}]
    response = test_client.post("/api/orders", json=order_payload(items=items), headers=auth(CUSTOMER_TOKEN))

    assert response.status_code == 400
    assert "Available sizes: small, large" in response.json()["message"]
    assert service_state.orders.count() == 0


def test_create_order_not_serviceable(test_client):
    response = test_client.post(
        "/api/orders", json=order_payload(delivery_address=address("Bastos")), headers=auth(CUSTOMER_TOKEN)
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Delivery not available for Bastos, Douala"


def test_own_orders_only(test_client):
    place_order(test_client)
    place_order(test_client, token=OTHER_CUSTOMER_TOKEN)

    response = test_client.get("/api/orders", headers=auth(CUSTOMER_TOKEN))

    assert response.status_code == 200
    data = response.json()["data"]
    assert [o["user_id"] for o in data["orders"]] == ["cust-1"]
    assert data["pagination"]["total_orders"] == 1


def test_own_orders_limit_is_capped(test_client):
    response = test_client.get("/api/orders", params={"limit": 51}, headers=auth(CUSTOMER_TOKEN))
    assert response.status_code == 400


def test_admin_orders(test_client):
    place_order(test_client)
    place_order(test_client, token=OTHER_CUSTOMER_TOKEN)

    response = test_client.get("/api/orders/admin/all", params={"limit": 1}, headers=auth(ADMIN_TOKEN))

    assert response.status_code == 200
    pagination = response.json()["data"]["pagination"]
    assert pagination["total_orders"] == 2
    assert pagination["total_pages"] == 2
    assert pagination["has_next_page"] is True
    assert pagination["has_prev_page"] is False


def test_admin_orders_status_filter(test_client):
    order = place_order(test_client)
    place_order(test_client)
    test_client.put(f"/api/orders/{order['id']}/status", json={"status": "preparing"}, headers=auth(ADMIN_TOKEN))

    response = test_client.get("/api/orders/admin/all", params={"status": "preparing"}, headers=auth(ADMIN_TOKEN))

    assert [o["id"] for o in response.json()["data"]["orders"]] == [order["id"]]


def test_admin_orders_forbidden_for_customers(test_client):
    response = test_client.get("/api/orders/admin/all", headers=auth(CUSTOMER_TOKEN))

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Admin privileges required."


def test_get_order_owner_or_staff(test_client):
    order = place_order(test_client)

    assert test_client.get(f"/api/orders/{order['id']}", headers=auth(CUSTOMER_TOKEN)).status_code == 200
    assert test_client.get(f"/api/orders/{order['id']}", headers=auth(ADMIN_TOKEN)).status_code == 200
    assert test_client.get(f"/api/orders/{order['id']}", headers=auth(OTHER_CUSTOMER_TOKEN)).status_code == 403
    assert test_client.get("/api/orders/missing", headers=auth(ADMIN_TOKEN)).status_code == 404


def test_update_status(test_client):
    order = place_order(test_client)

    response = test_client.put(
        f"/api/orders/{order['id']}/status", json={"status": "delivered"}, headers=auth(ADMIN_TOKEN)
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["previous_status"] == "pending"
    assert data["order"]["status"] == "delivered"
    assert data["order"]["actual_delivery_time"] is not None


def test_update_status_staff_only(test_client):
    order = place_order(test_client)

    response = test_client.put(
        f"/api/orders/{order['id']}/status", json={"status": "cancelled"}, headers=auth(CUSTOMER_TOKEN)
    )

    assert response.status_code == 403


def test_update_status_invalid_value(test_client):
    order = place_order(test_client)

    response = test_client.put(f"/api/orders/{order['id']}/status", json={"status": "lost"}, headers=auth(ADMIN_TOKEN))

    assert response.status_code == 400


def test_update_status_unknown_order(test_client):
    response = test_client.put("/api/orders/missing/status", json={"status": "ready"}, headers=auth(ADMIN_TOKEN))
    assert response.status_code == 404


def test_payment_confirmation(test_client):
    order = place_order(test_client, payment_method="momo")

    response = test_client.post(
        f"/api/payments/{order['id']}/confirm", json={"outcome": "success", "reference": "MP-1"}, headers=auth(CUSTOMER_TOKEN)
    )

    assert response.status_code == 200
    paid = response.json()["data"]["order"]
    assert paid["payment_status"] == "paid"
    assert paid["status"] == "confirmed"


def test_payment_confirmation_other_customer(test_client):
    order = place_order(test_client, payment_method="momo")

    response = test_client.post(
        f"/api/payments/{order['id']}/confirm", json={"outcome": "success"}, headers=auth(OTHER_CUSTOMER_TOKEN)
    )

    assert response.status_code == 403


def test_cash_confirmation(test_client):
    order = place_order(test_client)

    response = test_client.post(f"/api/payments/{order['id']}/cash", headers=auth(CUSTOMER_TOKEN))

    assert response.status_code == 200
    confirmed = response.json()["data"]["order"]
    assert confirmed["status"] == "confirmed"
    assert confirmed["payment_status"] == "pending"


def test_calculate_fee(test_client):
    response = test_client.post("/api/delivery-zones/calculate-fee", json={"city": "Douala", "neighborhood": "Akwa"})

    assert response.status_code == 200
    assert response.json()["data"] == {"delivery_fee": 500, "estimated_time": 30, "zone_name": "Zone X"}


def test_calculate_fee_unknown_location(test_client):
    response = test_client.post("/api/delivery-zones/calculate-fee", json={"city": "Douala", "neighborhood": "Bastos"})

    assert response.status_code == 404
    assert response.json()["message"] == "Delivery not available for this location"


def test_cities_and_neighborhoods(test_client):
    assert test_client.get("/api/delivery-zones/cities").json()["data"]["cities"] == ["Douala"]
    response = test_client.get("/api/delivery-zones/neighborhoods/Douala")
    assert response.json()["data"]["neighborhoods"] == ["Akwa", "Bonanjo"]


def test_public_zone_list_hides_admin_fields(test_client):
    zones = test_client.get("/api/delivery-zones").json()["data"]["zones"]

    assert {z["name"] for z in zones} == {"Zone X", "Zone Y"}
    assert "available" not in zones[0]
    assert "created_at" not in zones[0]


def test_zone_administration(test_client):
    payload = {
        "name": "Zone Yaoundé",
        "cities": ["Yaoundé"],
        "neighborhoods": [{"name": "Bastos", "city": "Yaoundé"}],
        "delivery_fee": 800,
        "estimated_time": 40,
    }
    assert test_client.post("/api/delivery-zones", json=payload, headers=auth(CUSTOMER_TOKEN)).status_code == 403

    created = test_client.post("/api/delivery-zones", json=payload, headers=auth(ADMIN_TOKEN))
    assert created.status_code == 201
    zone_id = created.json()["data"]["zone"]["id"]

    duplicate = test_client.post("/api/delivery-zones", json=payload, headers=auth(ADMIN_TOKEN))
    assert duplicate.status_code == 409

    updated = test_client.put(f"/api/delivery-zones/{zone_id}", json={"delivery_fee": 900}, headers=auth(ADMIN_TOKEN))
    assert updated.json()["data"]["zone"]["delivery_fee"] == 900

    fee = test_client.post("/api/delivery-zones/calculate-fee", json={"city": "Yaoundé", "neighborhood": "Bastos"})
    assert fee.json()["data"]["delivery_fee"] == 900

    assert test_client.delete(f"/api/delivery-zones/{zone_id}", headers=auth(ADMIN_TOKEN)).status_code == 200
    assert test_client.delete(f"/api/delivery-zones/{zone_id}", headers=auth(ADMIN_TOKEN)).status_code == 404
    admin_zones = test_client.get("/api/delivery-zones/admin/all", headers=auth(ADMIN_TOKEN)).json()["data"]["zones"]
    assert [z["name"] for z in admin_zones] == ["Zone X", "Zone Y"]
