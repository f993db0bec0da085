import json
from urllib.parse import quote
import pytest
from conftest import auth_headers, url_prefix

SHIPPING = {
    "first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com", "phone": "5550100100",
    "address": "12 Analytical Row", "city": "London", "state": "LDN", "zip_code": "10001",
}

user = auth_headers("user-1")
admin = auth_headers("admin-1", roles=["admin"])


@pytest.mark.asyncio
async def test_health(ac_client):
    response = await ac_client.get(f"{url_prefix}/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_cart_requires_bearer_token(ac_client):
    response = await ac_client.get(f"{url_prefix}/cart")
    assert response.status_code in (401, 403)

    bad = await ac_client.get(f"{url_prefix}/cart", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


@pytest.mark.asyncio
async def test_add_to_cart_merges_lines(ac_client, catalog):
    body = {"product_id": catalog.almonds.id, "pack_size": "500g", "quantity": 2}

    first = await ac_client.post(f"{url_prefix}/cart/items", json=body, headers=user)
    second = await ac_client.post(f"{url_prefix}/cart/items", json=body, headers=user)

    assert first.status_code == 201, first.text
    assert second.status_code == 201, second.text
    assert "X-Request-ID" in second.headers
    item = second.json()["data"]["item"]
    assert item["quantity"] == 4
    assert item["created"] is False

    cart = await ac_client.get(f"{url_prefix}/cart", headers=user)
    data = cart.json()["data"]
    assert data["count"] == 4
    assert data["total"] == 480
    assert data["partial"] is False


@pytest.mark.asyncio
async def test_add_with_both_references_is_rejected(ac_client, catalog):
    body = {"product_id": catalog.almonds.id, "gift_box_id": catalog.festive.id}

    response = await ac_client.post(f"{url_prefix}/cart/items", json=body, headers=user)

    assert response.status_code == 422
    payload = response.json()
    assert payload["status"] == "error"
    assert payload["error"]["code"] == "VALIDATION_ERROR"
    assert payload["error"]["details"]["retryable"] is False


@pytest.mark.asyncio
async def test_add_unknown_product_is_404(ac_client, catalog):
    response = await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": 9999}, headers=user)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_update_quantity_validates_lower_bound(ac_client, catalog):
    added = await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": catalog.cashews.id}, headers=user)
    item_id = added.json()["data"]["item"]["id"]

    zero = await ac_client.patch(f"{url_prefix}/cart/items/{item_id}", json={"quantity": 0}, headers=user)
    ok = await ac_client.patch(f"{url_prefix}/cart/items/{item_id}", json={"quantity": 6}, headers=user)
    foreign = await ac_client.patch(f"{url_prefix}/cart/items/{item_id}", json={"quantity": 2},
                                    headers=auth_headers("user-2"))

    assert zero.status_code == 422
    assert ok.status_code == 200
    assert ok.json()["data"]["quantity"] == 6
    assert foreign.status_code == 404


@pytest.mark.asyncio
async def test_remove_and_clear(ac_client, catalog):
    added = await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": catalog.cashews.id}, headers=user)
    item_id = added.json()["data"]["item"]["id"]

    removed = await ac_client.delete(f"{url_prefix}/cart/items/{item_id}", headers=user)
    again = await ac_client.delete(f"{url_prefix}/cart/items/{item_id}", headers=user)
    cleared = await ac_client.delete(f"{url_prefix}/cart", headers=user)

    assert removed.json()["data"]["removed"] is True
    assert again.status_code == 200
    assert again.json()["data"]["removed"] is False
    assert cleared.status_code == 200


@pytest.mark.asyncio
async def test_guest_badge_count_from_cookie(ac_client):
    guest = {"items": [{"product_id": 1, "quantity": 2}, {"gift_box_id": 1, "quantity": 1}]}

    response = await ac_client.get(
        f"{url_prefix}/cart/count", headers={"Cookie": f"guest_cart={quote(json.dumps(guest))}"}
    )
    broken = await ac_client.get(f"{url_prefix}/cart/count", headers={"Cookie": "guest_cart=%7Bnope"})

    assert response.json()["data"]["count"] == 3
    assert broken.status_code == 200
    assert broken.json()["data"]["count"] == 0


@pytest.mark.asyncio
async def test_owner_badge_count(ac_client, catalog):
    await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": catalog.cashews.id, "quantity": 3},
                         headers=user)

    response = await ac_client.get(f"{url_prefix}/cart/count", headers=user)

    assert response.json()["data"]["count"] == 3


@pytest.mark.asyncio
async def test_merge_guest_cart_on_login(ac_client, catalog):
    guest = {"items": [
        {"product_id": catalog.cashews.id, "quantity": 2},
        {"product_id": 9999, "quantity": 1},
    ]}

    response = await ac_client.post(f"{url_prefix}/cart/merge-guest", json=guest, headers=user)

    assert response.status_code == 200, response.text
    report = response.json()["data"]
    assert report["merged"] == 1
    assert report["skipped"][0]["code"] == "NOT_FOUND"

    total = await ac_client.get(f"{url_prefix}/cart/total", headers=user)
    assert total.json()["data"]["total"] == 100


@pytest.mark.asyncio
async def test_checkout_flow(ac_client, catalog):
    await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": catalog.cashews.id, "quantity": 2},
                         headers=user)
    await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": catalog.walnuts.id}, headers=user)

    summary = await ac_client.get(f"{url_prefix}/cart/summary", headers=user)
    assert summary.json()["data"]["summary"]["shipping"] == 5.99

    placed = await ac_client.post(f"{url_prefix}/orders", json={"shipping_address": SHIPPING}, headers=user)
    assert placed.status_code == 201, placed.text
    order = placed.json()["data"]
    assert order["total_amount"] == 130
    assert order["billing_address"] == order["shipping_address"]

    listed = await ac_client.get(f"{url_prefix}/orders", headers=user)
    assert [o["id"] for o in listed.json()["data"]] == [order["id"]]

    items = await ac_client.get(f"{url_prefix}/orders/{order['id']}/items", headers=user)
    assert len(items.json()["data"]) == 2

    other = await ac_client.get(f"{url_prefix}/orders/{order['id']}", headers=auth_headers("user-2"))
    assert other.status_code == 404

    count = await ac_client.get(f"{url_prefix}/cart/count", headers=user)
    assert count.json()["data"]["count"] == 0


@pytest.mark.asyncio
async def test_checkout_empty_cart_is_conflict(ac_client):
    response = await ac_client.post(f"{url_prefix}/orders", json={"shipping_address": SHIPPING}, headers=user)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMPTY_CART"


@pytest.mark.asyncio
async def test_checkout_rejects_invalid_address(ac_client, catalog):
    response = await ac_client.post(
        f"{url_prefix}/orders", json={"shipping_address": {**SHIPPING, "email": "nope"}}, headers=user
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_admin_routes_require_admin_role(ac_client, catalog):
    await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": catalog.cashews.id}, headers=user)
    placed = await ac_client.post(f"{url_prefix}/orders", json={"shipping_address": SHIPPING}, headers=user)
    order_id = placed.json()["data"]["id"]

    denied = await ac_client.patch(f"{url_prefix}/admin/orders/{order_id}/status", json={"status": "shipped"},
                                   headers=user)
    shipped = await ac_client.patch(f"{url_prefix}/admin/orders/{order_id}/status", json={"status": "shipped"},
                                    headers=admin)
    paid = await ac_client.patch(f"{url_prefix}/admin/orders/{order_id}/payment-status",
                                 json={"payment_status": "paid"}, headers=admin)
    listed = await ac_client.get(f"{url_prefix}/admin/orders?status=shipped", headers=admin)

    assert denied.status_code == 403
    assert shipped.json()["data"]["status"] == "shipped"
    assert paid.json()["data"]["payment_status"] == "paid"
    assert [o["id"] for o in listed.json()["data"]] == [order_id]


@pytest.mark.asyncio
async def test_wishlist_routes(ac_client, catalog):
    added = await ac_client.post(f"{url_prefix}/wishlist/{catalog.almonds.id}", headers=user)
    again = await ac_client.post(f"{url_prefix}/wishlist/{catalog.almonds.id}", headers=user)
    member = await ac_client.get(f"{url_prefix}/wishlist/{catalog.almonds.id}", headers=user)
    listed = await ac_client.get(f"{url_prefix}/wishlist", headers=user)
    removed = await ac_client.delete(f"{url_prefix}/wishlist/{catalog.almonds.id}", headers=user)
    after = await ac_client.get(f"{url_prefix}/wishlist/{catalog.almonds.id}", headers=user)

    assert added.status_code == 201
    assert again.status_code == 201
    assert again.json()["data"]["created"] is False
    assert member.json()["data"]["in_wishlist"] is True
    assert [e["product_id"] for e in listed.json()["data"]] == [catalog.almonds.id]
    assert removed.status_code == 200
    assert after.json()["data"]["in_wishlist"] is False


@pytest.mark.asyncio
async def test_metrics_exposed(ac_client):
    await ac_client.get(f"{url_prefix}/cart/count")

    response = await ac_client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


@pytest.mark.asyncio
async def test_order_money_has_one_shape_across_routes(ac_client, catalog):
    await ac_client.post(f"{url_prefix}/cart/items", json={"product_id": catalog.cashews.id, "quantity": 2},
                         headers=user)
    placed = await ac_client.post(f"{url_prefix}/orders", json={"shipping_address": SHIPPING}, headers=user)
    order_id = placed.json()["data"]["id"]

    detail = await ac_client.get(f"{url_prefix}/orders/{order_id}", headers=user)
    shipped = await ac_client.patch(f"{url_prefix}/admin/orders/{order_id}/status", json={"status": "shipped"},
                                    headers=admin)

    totals = [placed.json()["data"]["total_amount"], detail.json()["data"]["total_amount"],
              shipped.json()["data"]["total_amount"]]
    assert totals == [100, 100, 100]
    assert all(isinstance(t, (int, float)) for t in totals)
    assert placed.json()["data"]["items"] == detail.json()["data"]["items"]


@pytest.mark.asyncio
async def test_merge_guest_cart_with_rejected_first_line(ac_client, catalog):
    guest = {"items": [
        {"product_id": catalog.almonds.id, "gift_box_id": catalog.festive.id, "quantity": 1},
        {"product_id": catalog.cashews.id, "quantity": 2},
    ]}

    response = await ac_client.post(f"{url_prefix}/cart/merge-guest", json=guest, headers=user)

    assert response.status_code == 200, response.text
    report = response.json()["data"]
    assert report["merged"] == 1
    assert [s["index"] for s in report["skipped"]] == [0]
    count = await ac_client.get(f"{url_prefix}/cart/count", headers=user)
    assert count.json()["data"]["count"] == 2
