from decimal import Decimal


def bill_payload(seed, lines, **kwargs):
    payload = {
        "client_id": seed.client_id,
        "invoice_number": "INV-1",
        "bill_date": "2025-06-04",
        "items": [
            {"lot_id": lot_id, "quantity": str(qty), "selling_price": str(price)}
            for lot_id, qty, price in lines
        ],
    }
    payload.update(kwargs)
    return payload


async def lot_available(client, lot_id):
    response = await client.get(f"/api/inventory/{lot_id}")
    assert response.status_code == 200
    return Decimal(response.json()["available_quantity"])


async def test_create_get_and_delete_bill(client, seed):
    response = await client.post("/api/bills/", json=bill_payload(
        seed, [(seed.lot_a, 2, "10.00"), (seed.lot_b, 1, "5.50")],
        extra_charges=[{"name": "Shipping", "amount": "3.00"}]))
    assert response.status_code == 201
    body = response.json()
    assert body["bill_no"] == "BL20250604001"
    assert Decimal(body["subtotal"]) == Decimal("25.50")
    assert Decimal(body["tax"]) == Decimal("2.55")
    assert Decimal(body["total"]) == Decimal("31.05")
    assert body["client"]["name"] == "Globex"
    assert body["items"][0]["item_name"] == "Widget"
    assert body["items"][0]["batch_number"] == "A"
    assert body["extra_charges"][0]["name"] == "Shipping"
    assert await lot_available(client, seed.lot_a) == Decimal("8")

    response = await client.get(f"/api/bills/{body['id']}")
    assert response.status_code == 200
    assert response.json()["total"] == body["total"]

    response = await client.delete(f"/api/bills/{body['id']}")
    assert response.status_code == 200
    assert "message" in response.json()
    assert await lot_available(client, seed.lot_a) == Decimal("10")
    assert await lot_available(client, seed.lot_b) == Decimal("5")

    response = await client.get(f"/api/bills/{body['id']}")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


async def test_insufficient_stock_returns_409_with_details(client, seed):
    response = await client.post("/api/bills/", json=bill_payload(
        seed, [(seed.lot_a, 1, 10), (seed.lot_c, 3, 10)]))

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "insufficient_stock"
    assert body["lot_id"] == seed.lot_c
    assert body["line_index"] == 1
    assert Decimal(body["available"]) == Decimal("2")
    assert Decimal(body["requested"]) == Decimal("3")
    assert await lot_available(client, seed.lot_a) == Decimal("10")


async def test_invalid_input_is_rejected_before_any_write(client, seed):
    response = await client.post("/api/bills/", json=bill_payload(seed, []))
    assert response.status_code == 422

    response = await client.post("/api/bills/", json=bill_payload(seed, [(seed.lot_a, 0, 10)]))
    assert response.status_code == 422

    response = await client.post("/api/bills/", json=bill_payload(seed, [(seed.lot_a, 1, -1)]))
    assert response.status_code == 422

    response = await client.post("/api/bills/", json=bill_payload(seed, [(seed.lot_a, 1, 10)], tax_rate="101"))
    assert response.status_code == 422

    response = await client.post("/api/bills/", json=bill_payload(seed, [(seed.lot_a, "0.0000001", 10)]))
    assert response.status_code == 422

    response = await client.post("/api/bills/", json=bill_payload(
        seed, [(seed.lot_a, 1, 10)], due_date="2025-06-01"))
    assert response.status_code == 400
    assert response.json()["field"] == "due_date"

    response = await client.get("/api/bills/")
    assert response.json()["total"] == 0
    assert await lot_available(client, seed.lot_a) == Decimal("10")


async def test_header_update_and_status_patch(client, seed):
    bill = (await client.post("/api/bills/", json=bill_payload(seed, [(seed.lot_a, 2, 10)]))).json()

    response = await client.put(f"/api/bills/{bill['id']}", json={"tax_rate": "0", "notes": "免税"})
    assert response.status_code == 200
    assert Decimal(response.json()["total"]) == Decimal("20.00")
    assert response.json()["notes"] == "免税"

    response = await client.put(f"/api/bills/{bill['id']}", json={"items": []})
    assert response.status_code == 422

    response = await client.patch(f"/api/bills/{bill['id']}/status", json={"status": "paid"})
    assert response.status_code == 200
    assert response.json()["status"] == "paid"
    assert response.json()["status_display"] == "已收款"

    response = await client.patch(f"/api/bills/{bill['id']}/status", json={"status": "void"})
    assert response.status_code == 422

    assert await lot_available(client, seed.lot_a) == Decimal("8")

    response = await client.get("/api/bills/", params={"status": "paid"})
    assert response.json()["total"] == 1
    assert response.json()["data"][0]["client"]["name"] == "Globex"


async def test_requests_are_scoped_to_account(client, seed):
    bill = (await client.post("/api/bills/", json=bill_payload(seed, [(seed.lot_a, 1, 10)]))).json()
    other = {"X-Account-Id": str(seed.other_account_id)}

    response = await client.get(f"/api/bills/{bill['id']}", headers=other)
    assert response.status_code == 404

    response = await client.delete(f"/api/bills/{bill['id']}", headers=other)
    assert response.status_code == 404

    response = await client.get("/api/bills/", headers=other)
    assert response.json()["total"] == 0

    response = await client.post("/api/bills/", json=bill_payload(seed, [(seed.other_lot, 1, 10)]))
    assert response.status_code == 404
    assert response.json()["resource"] == "inventory_lot"


async def test_missing_or_unknown_account_is_unauthorized(client, seed):
    response = await client.get("/api/bills/", headers={"X-Account-Id": ""})
    assert response.status_code == 401

    response = await client.get("/api/bills/", headers={"X-Account-Id": "abc"})
    assert response.status_code == 401

    response = await client.get("/api/bills/", headers={"X-Account-Id": "9999"})
    assert response.status_code == 401


async def test_client_with_bills_cannot_be_deleted(client, seed):
    await client.post("/api/bills/", json=bill_payload(seed, [(seed.lot_a, 1, 10)]))

    response = await client.delete(f"/api/clients/{seed.client_id}")
    assert response.status_code == 409
    assert response.json()["error"] == "resource_in_use"

    response = await client.post("/api/clients/", json={"name": "Umbrella"})
    assert response.status_code == 201
    new_id = response.json()["id"]
    response = await client.delete(f"/api/clients/{new_id}")
    assert response.status_code == 200
