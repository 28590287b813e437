"""
Tests for work order API endpoints.
"""

from decimal import Decimal

WAREHOUSE = "wh-1"


def receive(client, variant, qty, cost):
    response = client.post("/inventory/lots", json={
        "variant_id": variant,
        "warehouse_id": WAREHOUSE,
        "quantity": qty,
        "unit_cost": cost,
    })
    assert response.status_code == 201


def create_work_order(client):
    return client.post("/work-orders", json={
        "output_variant_id": "cabinet",
        "planned_quantity": "2",
        "labor_cost_per_unit": "5",
        "materials": [{"variant_id": "steel", "quantity_per_unit": "4"}],
    })


def advance(client, work_order_id, *steps):
    for step in steps:
        response = client.post(f"/work-orders/{work_order_id}/{step}")
        assert response.status_code == 200
    return response.json()


class TestWorkOrders:

    def test_full_flow(self, client):
        receive(client, "steel", "10", "2.5")
        work_order = create_work_order(client).json()
        advance(client, work_order["id"], "release", "start")

        consumed = client.post(
            f"/work-orders/{work_order['id']}/consume",
            json={"warehouse_id": WAREHOUSE},
        )
        completed = client.post(
            f"/work-orders/{work_order['id']}/complete",
            json={"warehouse_id": WAREHOUSE, "produced_quantity": "2"},
        )

        assert consumed.status_code == 200
        assert Decimal(consumed.json()["material_cost"]) == Decimal("20.00")
        assert completed.status_code == 200
        data = completed.json()
        assert data["status"] == "COMPLETED"
        # (20.00 material + 2 * 5 labour) / 2
        assert Decimal(data["unit_cost"]) == Decimal("15")

        stock = client.get(f"/inventory/stock/cabinet/{WAREHOUSE}").json()
        assert Decimal(stock["quantity"]) == Decimal("2")

    def test_short_material_returns_409(self, client):
        receive(client, "steel", "3", "2.5")
        work_order = create_work_order(client).json()
        advance(client, work_order["id"], "release", "start")

        response = client.post(
            f"/work-orders/{work_order['id']}/consume",
            json={"warehouse_id": WAREHOUSE},
        )

        assert response.status_code == 409
        steel = client.get(f"/inventory/stock/steel/{WAREHOUSE}").json()
        assert Decimal(steel["quantity"]) == Decimal("3")

    def test_start_from_draft_returns_409(self, client):
        work_order = create_work_order(client).json()

        response = client.post(f"/work-orders/{work_order['id']}/start")

        assert response.status_code == 409

    def test_cancel_and_list(self, client):
        work_order = create_work_order(client).json()

        response = client.post(
            f"/work-orders/{work_order['id']}/cancel", json={"reason": "Not needed"}
        )

        assert response.status_code == 200
        assert response.json()["is_cancelled"] is True
        assert client.get("/work-orders").json() == []
        listed = client.get("/work-orders", params={"include_cancelled": True}).json()
        assert [w["id"] for w in listed] == [work_order["id"]]
