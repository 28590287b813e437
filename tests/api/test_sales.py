"""
Tests for order, invoice, return and cash register endpoints.
"""

from datetime import date
from decimal import Decimal

YEAR = date.today().year


def create_customer(client):
    return client.post("/accounts", json={
        "code": "C001",
        "name": "Customer One",
        "account_type": "CUSTOMER",
    }).json()


def create_order(client, account_id, tracked=False, qty="2"):
    item = {"product_name": "Widget", "quantity": qty, "unit_price": "50.00"}
    if tracked:
        item.update(variant_id="variant-1", warehouse_id="wh-1")
    return client.post("/orders", json={
        "account_id": account_id,
        "vat_rate": "20",
        "items": [item],
    })


class TestOrders:

    def test_create_returns_totals(self, client):
        account = create_customer(client)
        response = create_order(client, account["id"])

        assert response.status_code == 201
        data = response.json()
        assert data["order_no"] == f"ORD-{YEAR}-0001"
        assert data["status"] == "DRAFT"
        assert data["grand_total"] == "120.00"

    def test_empty_order_returns_422(self, client):
        account = create_customer(client)
        response = client.post("/orders", json={"account_id": account["id"], "items": []})
        assert response.status_code == 422

    def test_confirm_without_stock_returns_error(self, client):
        account = create_customer(client)
        order = create_order(client, account["id"], tracked=True).json()

        response = client.post(f"/orders/{order['id']}/confirm")

        assert response.status_code == 404
        assert client.get(f"/orders/{order['id']}").json()["status"] == "DRAFT"

    def test_ship_uses_fifo_cost(self, client):
        account = create_customer(client)
        for cost, received_at in (("5", "2025-01-01T00:00:00"), ("7", "2025-02-01T00:00:00")):
            client.post("/inventory/lots", json={
                "variant_id": "variant-1",
                "warehouse_id": "wh-1",
                "quantity": "10",
                "unit_cost": cost,
                "received_at": received_at,
            })
        order = create_order(client, account["id"], tracked=True, qty="15").json()

        client.post(f"/orders/{order['id']}/confirm")
        response = client.post(f"/orders/{order['id']}/ship", json={})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "SHIPPED"
        assert data["waybill_no"] == f"WBL-{YEAR}-0001"
        assert Decimal(data["cost_of_goods"]) == Decimal("85.00")

    def test_invalid_transition_returns_409(self, client):
        account = create_customer(client)
        order = create_order(client, account["id"]).json()

        response = client.post(f"/orders/{order['id']}/deliver")
        assert response.status_code == 409

    def test_cancel_hides_order_from_list(self, client):
        account = create_customer(client)
        order = create_order(client, account["id"]).json()

        response = client.post(f"/orders/{order['id']}/cancel", json={"reason": "Duplicate"})

        assert response.json()["status"] == "CANCELLED"
        assert client.get("/orders").json() == []
        listed = client.get("/orders", params={"include_cancelled": True}).json()
        assert len(listed) == 1

    def test_delivery_pays_agency_commission(self, client):
        account = create_customer(client)
        agency = client.post("/accounts", json={
            "code": "A001",
            "name": "Agency One",
            "account_type": "SUPPLIER",
        }).json()
        order = client.post("/orders", json={
            "account_id": account["id"],
            "agency_account_id": agency["id"],
            "agency_commission_rate": "5",
            "items": [{"product_name": "Widget", "quantity": "2", "unit_price": "50.00"}],
        }).json()

        client.post(f"/orders/{order['id']}/confirm")
        client.post(f"/orders/{order['id']}/ship", json={})
        response = client.post(f"/orders/{order['id']}/deliver")

        assert response.status_code == 200
        assert Decimal(response.json()["commission_amount"]) == Decimal("5.00")
        entries = client.get("/ledger/entries", params={
            "account_id": agency["id"], "entry_type": "COMMISSION",
        }).json()
        assert [Decimal(e["credit"]) for e in entries] == [Decimal("5.00")]


class TestInvoices:

    def test_invoice_then_cancel(self, client):
        account = create_customer(client)
        order = create_order(client, account["id"]).json()

        invoice = client.post("/invoices", json={"order_id": order["id"]})
        assert invoice.status_code == 201
        assert invoice.json()["invoice_no"] == f"INV-{YEAR}-00001"
        assert client.get(f"/accounts/{account['id']}").json()["current_balance"] == "120.00"

        cancel = client.post(
            f"/invoices/{invoice.json()['id']}/cancel", json={"reason": "Wrong price"}
        )
        again = client.post(
            f"/invoices/{invoice.json()['id']}/cancel", json={"reason": "Again"}
        )

        assert cancel.json()["status"] == "CANCELLED"
        assert again.status_code == 409
        assert client.get(f"/accounts/{account['id']}").json()["current_balance"] == "0.00"


class TestReturns:

    def test_return_flow(self, client):
        account = create_customer(client)
        order = create_order(client, account["id"]).json()
        created = client.post("/returns", json={
            "order_id": order["id"],
            "reason": "Faulty",
            "items": [{
                "variant_id": "variant-1",
                "warehouse_id": "wh-1",
                "quantity": "1",
                "unit_price": "50.00",
                "unit_cost": "6.00",
            }],
        })
        assert created.status_code == 201
        return_id = created.json()["id"]

        early = client.post(f"/returns/{return_id}/complete")
        client.post(f"/returns/{return_id}/approve")
        done = client.post(f"/returns/{return_id}/complete")

        assert early.status_code == 409
        assert done.json()["status"] == "COMPLETED"
        stock = client.get("/inventory/stock/variant-1/wh-1").json()
        assert Decimal(stock["quantity"]) == Decimal("1")
        assert client.get(f"/accounts/{account['id']}").json()["current_balance"] == "-50.00"


class TestCashRegisters:

    def test_register_session(self, client):
        register = client.post("/cash/registers", json={"code": "TILL-1", "name": "Till"}).json()
        client.post(f"/cash/registers/{register['id']}/open", json={"opening_balance": "100.00"})

        deposit = {
            "movement_type": "IN",
            "amount": "20.00",
            "reason": "Float top-up",
            "idempotency_key": "key-1",
        }
        first = client.post(f"/cash/registers/{register['id']}/movements", json=deposit)
        replay = client.post(f"/cash/registers/{register['id']}/movements", json=deposit)
        overdraw = client.post(f"/cash/registers/{register['id']}/movements", json={
            "movement_type": "OUT",
            "amount": "500.00",
            "reason": "Too much",
            "idempotency_key": "key-2",
        })

        assert first.status_code == 201
        assert replay.json()["id"] == first.json()["id"]
        assert overdraw.status_code == 409

        report = client.post(
            f"/cash/registers/{register['id']}/close", json={"actual_cash": "120.00"}
        ).json()
        assert report["expected_cash"] == "120.00"
        assert report["variance"] == "0.00"


class TestSequences:

    def test_peek_next_number(self, client):
        account = create_customer(client)
        create_order(client, account["id"])

        data = client.get("/sequences/ORDER").json()

        assert data["current_value"] == 1
        assert data["predicted_next"] == f"ORD-{YEAR}-0002"

    def test_allocate_moves_the_counter(self, client):
        account = create_customer(client)
        create_order(client, account["id"])

        response = client.post("/sequences/ORDER")

        assert response.status_code == 201
        assert response.json()["number"] == f"ORD-{YEAR}-0002"
        assert client.get("/sequences/ORDER").json()["current_value"] == 2
        order = create_order(client, account["id"]).json()
        assert order["order_no"] == f"ORD-{YEAR}-0003"

    def test_peek_does_not_allocate(self, client):
        client.get("/sequences/WAYBILL")
        client.get("/sequences/WAYBILL")

        assert client.post("/sequences/WAYBILL").json()["number"] == f"WBL-{YEAR}-0001"

    def test_unknown_doc_type_returns_422(self, client):
        assert client.get("/sequences/NOPE").status_code == 422
