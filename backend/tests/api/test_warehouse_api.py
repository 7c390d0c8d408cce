"""
Tests for the inventory, goods receipt and goods issue endpoints
"""
from decimal import Decimal

from tests.factories import create_test_warehouse

ACTOR = {"X-Actor-Id": "7"}


def _receive(client, ledger, qty="100", unit_cost="5000"):
    created = client.post(
        "/api/v1/goods-receipts/",
        json={
            "company_id": 1,
            "date": "2025-01-10",
            "warehouse_id": ledger["warehouse"].id,
            "source_ref": "PO-0042",
            "lines": [{"item_id": ledger["item"].id, "qty": qty, "unit_cost": unit_cost}],
        },
        headers=ACTOR,
    )
    assert created.status_code == 201
    return created.json()


class TestGoodsReceiptsEndpoint:

    def test_create_and_approve(self, client, ledger):
        receipt = _receive(client, ledger)
        assert receipt["status"] == "DRAFT"
        assert receipt["created_by"] == 7
        assert Decimal(receipt["total_value"]) == Decimal("500000")

        response = client.post(f"/api/v1/goods-receipts/{receipt['id']}/approve", headers=ACTOR)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "APPROVED"
        assert data["gl_status"] == "POSTED"
        assert data["approved_by"] == 7

        entry = client.get(f"/api/v1/journal-entries/{data['journal_entry_id']}").json()
        assert Decimal(entry["total_debit"]) == Decimal("500000")

        balance = client.get(f"/api/v1/inventory/balances/{ledger['item'].id}/{ledger['warehouse'].id}").json()
        assert Decimal(balance["qty_on_hand"]) == Decimal("100")
        assert Decimal(balance["avg_cost"]) == Decimal("5000")

    def test_second_approval_is_conflict(self, client, ledger):
        receipt = _receive(client, ledger)
        client.post(f"/api/v1/goods-receipts/{receipt['id']}/approve")

        response = client.post(f"/api/v1/goods-receipts/{receipt['id']}/approve")
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "INVALID_TRANSITION"
        assert body["details"]["current_state"] == "APPROVED"

    def test_loan_return_type_not_accepted(self, client, ledger):
        response = client.post(
            "/api/v1/goods-receipts/",
            json={
                "company_id": 1,
                "date": "2025-01-10",
                "warehouse_id": ledger["warehouse"].id,
                "source_type": "LOAN_RETURN",
                "lines": [{"item_id": ledger["item"].id, "qty": "1"}],
            },
        )
        assert response.status_code == 422

    def test_patch_replaces_lines(self, client, ledger):
        receipt = _receive(client, ledger)
        response = client.patch(
            f"/api/v1/goods-receipts/{receipt['id']}",
            json={"lines": [{"item_id": ledger["tbs"].id, "qty": "3", "unit_cost": "2000"}]},
        )
        assert response.status_code == 200
        lines = response.json()["lines"]
        assert len(lines) == 1
        assert lines[0]["item_id"] == ledger["tbs"].id

    def test_delete_draft(self, client, ledger):
        receipt = _receive(client, ledger)
        assert client.delete(f"/api/v1/goods-receipts/{receipt['id']}").status_code == 200
        assert client.get(f"/api/v1/goods-receipts/{receipt['id']}").status_code == 404


class TestGoodsIssuesEndpoint:

    def _issue(self, client, ledger, qty, **extra):
        payload = {
            "company_id": 1,
            "date": "2025-01-15",
            "warehouse_id": ledger["warehouse"].id,
            "lines": [{"item_id": ledger["item"].id, "qty": qty}],
        }
        payload.update(extra)
        response = client.post("/api/v1/goods-issues/", json=payload, headers=ACTOR)
        assert response.status_code == 201
        return response.json()

    def test_insufficient_stock_is_unprocessable(self, client, ledger):
        receipt = _receive(client, ledger, qty="5", unit_cost="1000")
        client.post(f"/api/v1/goods-receipts/{receipt['id']}/approve")
        issue = self._issue(client, ledger, "8")

        response = client.post(f"/api/v1/goods-issues/{issue['id']}/approve")
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "INSUFFICIENT_STOCK"
        assert Decimal(body["details"]["requested"]) == Decimal("8")
        assert Decimal(body["details"]["available"]) == Decimal("5")

        balance = client.get(f"/api/v1/inventory/balances/{ledger['item'].id}/{ledger['warehouse'].id}").json()
        assert Decimal(balance["qty_on_hand"]) == Decimal("5")
        assert client.get(f"/api/v1/goods-issues/{issue['id']}").json()["status"] == "DRAFT"

    def test_loan_requires_receiver(self, client, ledger):
        response = client.post(
            "/api/v1/goods-issues/",
            json={
                "company_id": 1,
                "date": "2025-01-15",
                "warehouse_id": ledger["warehouse"].id,
                "purpose": "LOAN",
                "lines": [{"item_id": ledger["item"].id, "qty": "1"}],
            },
        )
        assert response.status_code == 422

    def test_loan_round_trip(self, client, ledger):
        receipt = _receive(client, ledger, qty="10", unit_cost="250")
        client.post(f"/api/v1/goods-receipts/{receipt['id']}/approve")
        loan = self._issue(client, ledger, "10", purpose="LOAN", loan_receiver="Bengkel")
        client.post(f"/api/v1/goods-issues/{loan['id']}/approve")

        active = client.get("/api/v1/goods-issues/loans/active", params={"company_id": 1}).json()
        assert [i["id"] for i in active] == [loan["id"]]

        line_id = loan["lines"][0]["id"]
        over = client.post(
            f"/api/v1/goods-issues/{loan['id']}/returns",
            json={"return_date": "2025-01-20", "lines": [{"goods_issue_line_id": line_id, "qty": "15"}]},
        )
        assert over.status_code == 400

        back = client.post(
            f"/api/v1/goods-issues/{loan['id']}/returns",
            json={"return_date": "2025-01-20", "lines": [{"goods_issue_line_id": line_id, "qty": "4"}]},
            headers=ACTOR,
        )
        assert back.status_code == 201
        assert back.json()["source_type"] == "LOAN_RETURN"
        assert back.json()["loan_issue_id"] == loan["id"]

        refreshed = client.get(f"/api/v1/goods-issues/{loan['id']}").json()
        assert refreshed["status"] == "PARTIAL_RETURN"
        assert Decimal(refreshed["lines"][0]["qty_outstanding"]) == Decimal("6")


class TestInventoryEndpoint:

    def test_transfer_between_warehouses(self, client, db_session, ledger):
        receipt = _receive(client, ledger, qty="10", unit_cost="300")
        client.post(f"/api/v1/goods-receipts/{receipt['id']}/approve")
        store = create_test_warehouse(db_session, code="GD-02")

        response = client.post(
            "/api/v1/inventory/transfers",
            json={
                "item_id": ledger["item"].id,
                "from_warehouse_id": ledger["warehouse"].id,
                "to_warehouse_id": store.id,
                "qty": "4",
            },
            headers=ACTOR,
        )
        assert response.status_code == 201
        assert Decimal(response.json()["unit_cost"]) == Decimal("300")

        balances = client.get("/api/v1/inventory/balances", params={"item_id": ledger["item"].id}).json()
        by_warehouse = {b["warehouse_id"]: Decimal(b["qty_on_hand"]) for b in balances}
        assert by_warehouse == {ledger["warehouse"].id: Decimal("6"), store.id: Decimal("4")}

    def test_same_warehouse_transfer_rejected(self, client, ledger):
        response = client.post(
            "/api/v1/inventory/transfers",
            json={
                "item_id": ledger["item"].id,
                "from_warehouse_id": ledger["warehouse"].id,
                "to_warehouse_id": ledger["warehouse"].id,
                "qty": "1",
            },
        )
        assert response.status_code == 422

    def test_stock_ledger_lists_movements(self, client, ledger):
        receipt = _receive(client, ledger, qty="2", unit_cost="10")
        client.post(f"/api/v1/goods-receipts/{receipt['id']}/approve")

        response = client.get(f"/api/v1/inventory/ledger/{ledger['item'].id}")
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_empty_balance_reads_zero(self, client, ledger):
        response = client.get(f"/api/v1/inventory/balances/{ledger['tbs'].id}/{ledger['warehouse'].id}")
        assert response.status_code == 200
        assert Decimal(response.json()["qty_on_hand"]) == 0
