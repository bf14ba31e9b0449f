import pytest
from fastapi.testclient import TestClient

from storefront.main import app

ADDRESS = {
    "full_name": "Jane Doe",
    "address_line1": "123 Main Street",
    "city": "Foodville",
    "postal_code": "F00D4P",
    "country": "US",
    "phone_number": "+1 (555) 123-4567",
}


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _add_steak(client, **overrides):
    body = {
        "dish_id": "d3",
        "quantity": 1,
        "selections": {"c1": "c1o2", "c2": "c2o3"},
        **overrides,
    }
    return client.post("/api/cart/items", json=body)


def _checkout_to_review(client):
    assert client.patch("/api/checkout", json=ADDRESS).status_code == 200
    assert client.post("/api/checkout/next").status_code == 200
    assert client.patch("/api/checkout", json={"payment_method": "paypal"}).status_code == 200
    assert client.post("/api/checkout/next").status_code == 200


def _place_order(client) -> str:
    assert _add_steak(client).status_code == 201
    _checkout_to_review(client)
    client.patch("/api/checkout", json={"agree_to_terms": True})
    response = client.post("/api/checkout/submit")
    assert response.status_code == 200
    return response.json()["order_id"]


def test_root_and_health(client):
    assert client.get("/").status_code == 200

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "operational"


def test_menu_lists_categories(client):
    response = client.get("/api/menu")
    data = response.json()

    assert response.status_code == 200
    assert data["restaurant"] == "The Gourmet Place"
    assert list(data["categories"]) == ["Appetizers", "Main Courses", "Desserts"]


# =============================================================================
# CART
# =============================================================================

def test_add_customized_dish(client):
    response = _add_steak(client)
    data = response.json()

    assert response.status_code == 201
    assert data["line_item"]["unit_price"] == "28.00"
    assert data["line_item"]["customization_delta"] == "2.00"
    assert data["cart"]["badge"] == "1"
    assert data["cart"]["summary"]["subtotal"] == "30.00"


def test_missing_required_choice_is_422(client):
    response = _add_steak(client, selections={"c1": "c1o2"})

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "missing_required_selection"
    assert client.get("/api/cart").json()["item_count"] == 0


def test_unknown_dish_is_404(client):
    assert client.post("/api/cart/items", json={"dish_id": "nope"}).status_code == 404


def test_update_and_remove_line(client):
    line_id = _add_steak(client).json()["line_item"]["line_item_id"]

    response = client.patch(f"/api/cart/items/{line_id}", json={"quantity": -3})
    assert response.json()["line_item"]["quantity"] == 1

    assert client.delete(f"/api/cart/items/{line_id}").status_code == 200
    assert client.delete(f"/api/cart/items/{line_id}").status_code == 404
    assert client.get("/api/cart").json()["items"] == []


# =============================================================================
# CHECKOUT
# =============================================================================

def test_next_with_invalid_address_is_422(client):
    client.patch("/api/checkout", json={**ADDRESS, "postal_code": "F00 D4P"})

    response = client.post("/api/checkout/next")

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["message"] == "Postal code cannot contain spaces."
    assert detail["errors"][0]["field"] == "postal_code"


def test_back_on_first_step(client):
    response = client.post("/api/checkout/back")
    assert response.status_code == 200
    assert response.json()["step"] == 1


def test_submit_without_consent_is_409(client):
    _add_steak(client)
    _checkout_to_review(client)

    response = client.post("/api/checkout/submit")

    assert response.status_code == 409
    assert response.json()["detail"]["blockers"][0]["field"] == "agree_to_terms"
    assert client.get("/api/checkout").json()["state"] == "editing"


def test_submit_places_order_and_clears_cart(client):
    order_id = _place_order(client)

    assert order_id.startswith("ORD-")
    assert client.get("/api/cart").json()["item_count"] == 0
    assert client.get("/api/checkout").json()["state"] == "submitted"
    assert client.patch("/api/checkout", json={"full_name": "Other"}).status_code == 409

    reset = client.post("/api/checkout/reset").json()
    assert reset["state"] == "editing"
    assert reset["current_step"] == 1


# =============================================================================
# TRACKING
# =============================================================================

def test_track_demo_order(client):
    response = client.post("/api/orders/FD12345XYZ/tracking")
    data = response.json()

    assert response.status_code == 200
    assert data["status"] == "tracking"
    assert data["progress_percent"] == 25
    assert data["order"]["details"]["restaurant_name"] == "Pizza Palace"

    assert client.get("/api/orders/FD12345XYZ/tracking").json()["status"] == "tracking"
    assert client.delete("/api/orders/FD12345XYZ/tracking").status_code == 200
    assert client.get("/api/orders/FD12345XYZ/tracking").status_code == 404


def test_track_unknown_order_is_404(client):
    assert client.post("/api/orders/NOPE/tracking").status_code == 404
    assert client.get("/api/orders/NOPE/tracking").status_code == 404


def test_track_and_cancel_placed_order(client):
    order_id = _place_order(client)
    assert client.post(f"/api/orders/{order_id}/tracking").status_code == 200

    response = client.post(f"/api/orders/{order_id}/cancel", json={"reason": "Ordered twice"})
    data = response.json()

    assert response.status_code == 200
    assert data["refund"]["success"] is True
    assert data["tracking"]["status"] == "cancelled"


def test_demo_order_cannot_be_cancelled(client):
    client.post("/api/orders/FD12345XYZ/tracking")
    response = client.post("/api/orders/FD12345XYZ/cancel", json={})
    assert response.status_code == 409
