# tests/api/test_inventory_api.py
from decimal import Decimal

import pytest

from tests.helpers.inventory import RICE, SOAP, WH_A, WH_B, qty_of, stock_up

pytestmark = pytest.mark.asyncio


async def test_level_of_untouched_pair_is_zero(client):
    r = await client.get("/inventory/level", params={"warehouse_id": WH_A, "variant_id": SOAP})
    assert r.status_code == 200, r.text
    body = r.json()
    assert Decimal(body["quantity"]) == 0
    assert body["id"] is None


async def test_adjust_then_read_back(client, async_session_maker):
    r = await client.post(
        "/inventory/adjust",
        json={"warehouse_id": WH_A, "variant_id": SOAP, "delta": "100", "ref": "INIT"},
    )
    assert r.status_code == 200, r.text
    assert Decimal(r.json()["quantity"]) == Decimal("100")

    r = await client.post(
        "/inventory/adjust",
        json={"warehouse_id": WH_A, "variant_id": SOAP, "delta": "-30"},
    )
    assert r.status_code == 200, r.text
    assert Decimal(r.json()["quantity"]) == Decimal("70")
    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("70")

    r = await client.get("/inventory/movements", params={"warehouse_id": WH_A, "variant_id": SOAP})
    assert r.status_code == 200
    moves = r.json()
    assert [m["reason"] for m in moves] == ["ADJUSTMENT", "ADJUSTMENT"]
    assert moves[0]["actor_id"] == 42


async def test_adjust_shortage_returns_problem(client, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "5")

    r = await client.post(
        "/inventory/adjust",
        json={"warehouse_id": WH_A, "variant_id": SOAP, "delta": "-6"},
    )
    assert r.status_code == 409
    p = r.json()
    assert p["error_code"] == "insufficient_stock"
    assert p["http_status"] == 409
    assert p["trace_id"].startswith("t_")
    assert p["context"]["path"] == "/inventory/adjust"
    assert p["context"]["warehouse_id"] == WH_A
    assert Decimal(p["context"]["available"]) == Decimal("5")
    assert p["details"][0]["type"] == "shortage"
    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("5")


@pytest.mark.parametrize(
    "payload,status,code",
    [
        ({"warehouse_id": 999, "variant_id": SOAP, "delta": "1"}, 404, "warehouse_not_found"),
        ({"warehouse_id": WH_A, "variant_id": 999, "delta": "1"}, 404, "variant_not_found"),
        ({"warehouse_id": WH_A, "variant_id": SOAP, "delta": "0"}, 400, "invalid_quantity"),
        ({"warehouse_id": WH_A, "variant_id": SOAP, "delta": "0.0004"}, 400, "invalid_quantity"),
        ({"warehouse_id": WH_A, "variant_id": SOAP, "delta": "1e12"}, 400, "invalid_quantity"),
        ({"warehouse_id": WH_A, "variant_id": SOAP, "delta": "lots"}, 422, "request_validation_error"),
        ({"warehouse_id": 0, "variant_id": SOAP, "delta": "1"}, 422, "request_validation_error"),
    ],
)
async def test_adjust_rejections(client, payload, status, code):
    r = await client.post("/inventory/adjust", json=payload)
    assert r.status_code == status, r.text
    assert r.json()["error_code"] == code


async def test_mutation_requires_actor_header(client):
    r = await client.post(
        "/inventory/adjust",
        json={"warehouse_id": WH_A, "variant_id": SOAP, "delta": "1"},
        headers={"X-User-Id": ""},
    )
    assert r.status_code == 401
    assert r.json()["error_code"] == "missing_actor"


async def test_transfer_endpoints(client, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "100")

    r = await client.post(
        "/inventory/transfer",
        json={
            "source_warehouse_id": WH_A,
            "destination_warehouse_id": WH_B,
            "items": [{"variant_id": SOAP, "quantity": "30"}],
        },
    )
    assert r.status_code == 201, r.text
    t = r.json()
    assert t["status"] == "completed"
    assert t["authorized_by_user_id"] == 42
    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("70")
    assert await qty_of(async_session_maker, WH_B, SOAP) == Decimal("30")

    r = await client.get(f"/inventory/transfers/{t['id']}")
    assert r.status_code == 200
    assert Decimal(r.json()["items"][0]["quantity"]) == Decimal("30")

    r = await client.get("/inventory/transfers", params={"page": 1, "per_page": 10})
    assert r.status_code == 200
    page = r.json()
    assert page["total"] == 1 and page["total_pages"] == 1
    assert page["items"][0]["id"] == t["id"]

    r = await client.get("/inventory/transfers/4242")
    assert r.status_code == 404
    assert r.json()["error_code"] == "transfer_not_found"


async def test_transfer_rejections(client, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "70")

    r = await client.post(
        "/inventory/transfer",
        json={
            "source_warehouse_id": WH_A,
            "destination_warehouse_id": WH_A,
            "items": [{"variant_id": SOAP, "quantity": "1"}],
        },
    )
    assert r.status_code == 400
    assert r.json()["error_code"] == "same_warehouse"

    r = await client.post(
        "/inventory/transfer",
        json={
            "source_warehouse_id": WH_A,
            "destination_warehouse_id": WH_B,
            "items": [{"variant_id": SOAP, "quantity": "200"}],
        },
    )
    assert r.status_code == 409
    assert "transfer_id" not in r.json()["context"]
    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("70")


async def test_listing_endpoints(client, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "3")
    await stock_up(async_session_maker, WH_B, RICE, "40")

    r = await client.get("/inventory", params={"per_page": 1, "page": 2})
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 2 and body["total_pages"] == 2
    assert body["items"][0]["warehouse_id"] == WH_B

    r = await client.get(f"/inventory/warehouse/{WH_A}")
    assert [it["variant_id"] for it in r.json()["items"]] == [SOAP]

    r = await client.get("/inventory/warehouse/999")
    assert r.status_code == 404

    r = await client.get(f"/inventory/variant/{RICE}")
    assert [it["warehouse_id"] for it in r.json()] == [WH_B]

    r = await client.get("/inventory/low-stock")
    assert [(it["warehouse_id"], it["variant_id"]) for it in r.json()] == [(WH_A, SOAP)]

    r = await client.get("/inventory/low-stock", params={"threshold": "50"})
    assert len(r.json()) == 2

    r = await client.get("/inventory/expiring", params={"days": 7})
    assert r.status_code == 200 and r.json() == []

    r = await client.get("/inventory", params={"per_page": 101})
    assert r.status_code == 422


async def test_health_and_metrics(client, async_session_maker):
    r = await client.get("/healthz")
    assert r.json() == {"status": "ok"}

    await client.post(
        "/inventory/adjust",
        json={"warehouse_id": WH_A, "variant_id": SOAP, "delta": "-1"},
    )
    r = await client.get("/metrics")
    assert r.status_code == 200
    text = r.text
    assert "inventory_movements_total" in text
    assert 'ledger_rejections_total{code="insufficient_stock"}' in text
