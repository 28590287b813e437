"""
Tests for cheque API endpoints.
"""


def create_drawer(client):
    return client.post("/accounts", json={
        "code": "C100",
        "name": "Drawer Ltd",
        "account_type": "CUSTOMER",
    }).json()


def register_cheque(client, drawer_id, cheque_no="CHQ-1"):
    return client.post("/cheques", json={
        "cheque_no": cheque_no,
        "direction": "RECEIVED",
        "drawer_id": drawer_id,
        "amount": "250.00",
        "issue_date": "2025-01-10",
        "due_date": "2025-03-10",
    })


class TestRegister:

    def test_register_returns_201(self, client):
        drawer = create_drawer(client)
        response = register_cheque(client, drawer["id"])

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "PORTFOLIO"
        assert data["amount"] == "250.00"

    def test_duplicate_returns_409(self, client):
        drawer = create_drawer(client)
        register_cheque(client, drawer["id"])

        assert register_cheque(client, drawer["id"]).status_code == 409


class TestTransition:

    def test_invalid_transition_returns_409(self, client):
        drawer = create_drawer(client)
        cheque = register_cheque(client, drawer["id"]).json()

        response = client.post(
            f"/cheques/{cheque['id']}/transition", json={"to_status": "COLLECTED"}
        )

        assert response.status_code == 409
        entries = client.get("/ledger/entries").json()
        assert entries == []

    def test_collect_returns_ledger_entry(self, client):
        drawer = create_drawer(client)
        cheque = register_cheque(client, drawer["id"]).json()

        deposit = client.post(
            f"/cheques/{cheque['id']}/transition", json={"to_status": "DEPOSITED"}
        )
        collect = client.post(
            f"/cheques/{cheque['id']}/transition", json={"to_status": "COLLECTED"}
        )

        assert deposit.json()["ledger_entry"] is None
        data = collect.json()
        assert data["cheque"]["status"] == "COLLECTED"
        assert data["ledger_entry"]["entry_type"] == "CHEQUE_COLLECT"
        assert data["ledger_entry"]["debit"] == "250.00"

        history = client.get(f"/cheques/{cheque['id']}/history").json()
        assert [h["to_status"] for h in history] == [
            "PORTFOLIO", "DEPOSITED", "COLLECTED",
        ]

    def test_endorse_without_endorsee_succeeds(self, client):
        drawer = create_drawer(client)
        cheque = register_cheque(client, drawer["id"]).json()

        response = client.post(
            f"/cheques/{cheque['id']}/transition", json={"to_status": "ENDORSED"}
        )
        assert response.status_code == 200
        assert response.json()["cheque"]["endorsed_to"] is None

    def test_endorse_to_unknown_payee_returns_404(self, client):
        drawer = create_drawer(client)
        cheque = register_cheque(client, drawer["id"]).json()

        response = client.post(
            f"/cheques/{cheque['id']}/transition",
            json={"to_status": "ENDORSED", "payee_id": 9999},
        )
        assert response.status_code == 404

    def test_list_filters_by_status(self, client):
        drawer = create_drawer(client)
        first = register_cheque(client, drawer["id"], "CHQ-1").json()
        register_cheque(client, drawer["id"], "CHQ-2")
        client.post(f"/cheques/{first['id']}/transition", json={"to_status": "DEPOSITED"})

        response = client.get("/cheques", params={"status": "DEPOSITED"})

        assert [c["cheque_no"] for c in response.json()] == ["CHQ-1"]
