"""
Tests for account and ledger API endpoints.

These test the HTTP layer: status codes, response format,
branch scoping and error handling. Business logic is tested
in test_ledger_service.py.
"""

from datetime import date

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from back_office.main import app
from back_office.services.ledger_service import LedgerService


def create_account(client, code="C001"):
    response = client.post("/accounts", json={
        "code": code,
        "name": f"Account {code}",
        "account_type": "CUSTOMER",
        "currency": "USD",
    })
    assert response.status_code == 201
    return response.json()


def post_invoice_entry(client, account_id, amount="100.00"):
    return client.post("/ledger/entries", json={
        "account_id": account_id,
        "entry_type": "INVOICE",
        "debit": amount,
        "description": "Invoice",
    })


class TestAccounts:

    def test_create_account_returns_data(self, client):
        data = create_account(client)

        assert data["code"] == "C001"
        assert data["branch_id"] == "branch-1"
        assert data["current_balance"] == "0.00"
        assert data["is_active"] is True

    def test_duplicate_code_returns_409(self, client):
        create_account(client)
        response = client.post("/accounts", json={
            "code": "C001",
            "name": "Again",
            "account_type": "CUSTOMER",
        })
        assert response.status_code == 409

    def test_missing_branch_header_returns_422(self, client):
        bare = TestClient(app)
        response = bare.get("/accounts")
        assert response.status_code == 422

    def test_other_branch_cannot_see_account(self, client):
        account = create_account(client)
        response = client.get(
            f"/accounts/{account['id']}", headers={"X-Branch-Id": "branch-2"}
        )
        assert response.status_code == 404


class TestEntries:

    def test_post_entry_returns_201(self, client):
        account = create_account(client)
        response = post_invoice_entry(client, account["id"])

        assert response.status_code == 201
        data = response.json()
        assert data["entry_no"] == f"LED-{date.today().year}-00001"
        assert data["debit"] == "100.00"
        assert data["created_by"] == "tester"

    def test_entry_moves_balance(self, client):
        account = create_account(client)
        post_invoice_entry(client, account["id"], "100.00")
        client.post("/ledger/collections", json={
            "account_id": account["id"],
            "amount": "30.00",
        })

        data = client.get(f"/accounts/{account['id']}").json()
        assert data["current_balance"] == "70.00"

    def test_both_sides_returns_400(self, client):
        account = create_account(client)
        response = client.post("/ledger/entries", json={
            "account_id": account["id"],
            "entry_type": "INVOICE",
            "debit": "10.00",
            "credit": "10.00",
            "description": "Broken",
        })
        assert response.status_code == 400

    def test_unknown_account_returns_404(self, client):
        response = post_invoice_entry(client, 999)
        assert response.status_code == 404


class TestReverse:

    def test_reverse_then_reverse_again(self, client):
        account = create_account(client)
        entry = post_invoice_entry(client, account["id"]).json()

        first = client.post(
            f"/ledger/entries/{entry['id']}/reverse", json={"reason": "Posted twice"}
        )
        second = client.post(
            f"/ledger/entries/{entry['id']}/reverse", json={"reason": "Again"}
        )

        assert first.status_code == 201
        assert first.json()["entry_type"] == "REVERSAL"
        assert first.json()["credit"] == "100.00"
        assert second.status_code == 409

        balance = client.get(f"/accounts/{account['id']}/verify").json()
        assert balance["cached_balance"] == "0.00"
        assert balance["matches"] is True

    def test_reverse_requires_reason(self, client):
        account = create_account(client)
        entry = post_invoice_entry(client, account["id"]).json()

        response = client.post(f"/ledger/entries/{entry['id']}/reverse", json={})
        assert response.status_code == 422


class TestReports:

    def test_statement_running_balance(self, client):
        account = create_account(client)
        post_invoice_entry(client, account["id"], "100.00")
        post_invoice_entry(client, account["id"], "50.00")

        data = client.get(f"/ledger/accounts/{account['id']}/statement").json()

        assert [line["balance"] for line in data["lines"]] == ["100.00", "150.00"]
        assert data["closing_balance"] == "150.00"

    def test_integrity_report(self, client):
        account = create_account(client)
        post_invoice_entry(client, account["id"])

        response = client.get("/ledger/integrity")
        assert response.status_code == 200
        assert response.json()["is_consistent"] is True


class TestFxRevaluation:

    def invoiced_euro_customer(self, client):
        account = client.post("/accounts", json={
            "code": "E100",
            "name": "Euro Customer",
            "account_type": "CUSTOMER",
            "currency": "EUR",
        }).json()
        order = client.post("/orders", json={
            "account_id": account["id"],
            "exchange_rate": "1.1",
            "items": [{"product_name": "Service", "quantity": "1", "unit_price": "100.00"}],
        }).json()
        client.post("/invoices", json={"order_id": order["id"]})
        return account

    def test_calculate_then_post(self, client):
        account = self.invoiced_euro_customer(client)

        preview = client.post("/ledger/fx-revaluation/calculate", json={"rates": {"EUR": "1.2"}})
        posted = client.post("/ledger/fx-revaluation", json={"rates": {"EUR": "1.2"}})

        assert preview.status_code == 200
        assert preview.json()["net_gain_loss"] == "10.00"
        assert posted.status_code == 201
        [entry] = posted.json()["entries"]
        assert entry["entry_type"] == "FX_GAIN_LOSS"
        assert entry["debit"] == "10.00"
        balance = client.get(f"/accounts/{account['id']}").json()["current_balance"]
        assert balance == "110.00"

    def test_bad_rate_returns_422(self, client):
        response = client.post("/ledger/fx-revaluation", json={"rates": {"EUR": "-1"}})
        assert response.status_code == 422


class TestAudit:

    def test_mutations_are_audited(self, client):
        account = create_account(client)
        entry = post_invoice_entry(client, account["id"]).json()
        client.post(f"/ledger/entries/{entry['id']}/reverse", json={"reason": "Oops"})

        logs = client.get("/audit", params={"entity_type": "LEDGER_ENTRY"}).json()

        assert [log["action"] for log in logs] == ["REVERSAL", "CREATE"]
        assert all(log["actor"] == "tester" for log in logs)


class TestStorageErrors:

    def test_storage_failure_returns_503(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("connection lost"))

        monkeypatch.setattr(LedgerService, "list_entries", broken)

        response = client.get("/ledger/entries")
        assert response.status_code == 503
        assert response.json() == {"detail": "Storage unavailable, please retry"}
