"""
Tests for the weighbridge ticket endpoints
"""
from decimal import Decimal

from pks_ledger.models.accounting import SystemAccountKey
from tests.factories import create_test_ledger

ACTOR = {"X-Actor-Id": "11"}


def _ticket_payload(ledger, no_seri="20250314-001", **extra):
    payload = {
        "company_id": 1,
        "no_seri": no_seri,
        "item_id": ledger["tbs"].id,
        "tanggal": "2025-03-14",
        "timbang1": "12500",
        "timbang2": "4500",
        "pot_percent": "0.05",
        "harga_per_kg": "2150",
        "pph_rate": "0.0025",
        "upah_bongkar_per_kg": "15",
        "warehouse_id": ledger["warehouse"].id,
    }
    payload.update(extra)
    return payload


class TestWeighbridgeEndpoint:

    def test_create_computes_payment(self, client, ledger):
        response = client.post("/api/v1/weighbridge-tickets/", json=_ticket_payload(ledger), headers=ACTOR)
        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["berat_terima"]) == Decimal("7600")
        assert Decimal(data["total_pembayaran_supplier"]) == Decimal("16299150")
        assert data["created_by"] == 11

    def test_pot_percent_over_one_fails_validation(self, client, ledger):
        response = client.post("/api/v1/weighbridge-tickets/", json=_ticket_payload(ledger, pot_percent="1.5"))
        assert response.status_code == 422

    def test_next_no_seri(self, client, ledger):
        response = client.get("/api/v1/weighbridge-tickets/no-seri", params={"company_id": 1, "tanggal": "2025-03-14"})
        assert response.status_code == 200
        assert response.json() == {"no_seri": "20250314-001"}

    def test_bulk_create_reports_errors(self, client, ledger):
        response = client.post(
            "/api/v1/weighbridge-tickets/bulk",
            json={
                "company_id": 1,
                "tickets": [
                    _ticket_payload(ledger, no_seri="20250314-001"),
                    _ticket_payload(ledger, no_seri="20250314-001"),
                ],
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert len(data["created"]) == 1
        assert data["errors"][0]["no_seri"] == "20250314-001"
        assert data["errors"][0]["error"] == "DUPLICATE_ERROR"

    def test_full_workflow(self, client, ledger):
        ticket = client.post("/api/v1/weighbridge-tickets/", json=_ticket_payload(ledger)).json()
        ticket_id = ticket["id"]

        posted = client.post(f"/api/v1/weighbridge-tickets/{ticket_id}/post", headers=ACTOR)
        assert posted.status_code == 200
        assert posted.json()["status"] == "POSTED"

        frozen = client.put(
            f"/api/v1/weighbridge-tickets/{ticket_id}/pricing",
            json={"harga_per_kg": "2200", "pph_rate": "0"},
        )
        assert frozen.status_code == 409

        approved = client.post(f"/api/v1/weighbridge-tickets/{ticket_id}/approve", json={}, headers=ACTOR)
        assert approved.status_code == 200
        data = approved.json()
        assert data["status"] == "APPROVED"
        assert data["gl_status"] == "POSTED"
        assert data["approved_by"] == 11

        balance = client.get(f"/api/v1/inventory/balances/{ledger['tbs'].id}/{ledger['warehouse'].id}").json()
        assert Decimal(balance["qty_on_hand"]) == Decimal("7600")

    def test_reject_then_reprice(self, client, ledger):
        ticket_id = client.post("/api/v1/weighbridge-tickets/", json=_ticket_payload(ledger)).json()["id"]
        client.post(f"/api/v1/weighbridge-tickets/{ticket_id}/post")

        rejected = client.post(f"/api/v1/weighbridge-tickets/{ticket_id}/reject", json={"reason": "Harga salah"})
        assert rejected.status_code == 200
        assert rejected.json()["status"] == "DRAFT"

        repriced = client.put(
            f"/api/v1/weighbridge-tickets/{ticket_id}/pricing",
            json={"harga_per_kg": "2100", "pph_rate": "0.0025", "upah_bongkar_per_kg": "15"},
        )
        assert repriced.status_code == 200
        assert Decimal(repriced.json()["total"]) == Decimal("15960000")

    def test_bulk_post_is_all_or_nothing(self, client, ledger):
        first = client.post("/api/v1/weighbridge-tickets/", json=_ticket_payload(ledger, no_seri="A-1")).json()
        second = client.post("/api/v1/weighbridge-tickets/", json=_ticket_payload(ledger, no_seri="A-2")).json()
        client.post(f"/api/v1/weighbridge-tickets/{second['id']}/post")

        response = client.post("/api/v1/weighbridge-tickets/bulk-post", json={"ticket_ids": [first["id"], second["id"]]})
        assert response.status_code == 409
        assert client.get(f"/api/v1/weighbridge-tickets/{first['id']}").json()["status"] == "DRAFT"

    def test_update_weighing_in_draft(self, client, ledger):
        ticket_id = client.post("/api/v1/weighbridge-tickets/", json=_ticket_payload(ledger)).json()["id"]
        response = client.patch(f"/api/v1/weighbridge-tickets/{ticket_id}/weighing", json={"timbang1": "14500"})
        assert response.status_code == 200
        assert Decimal(response.json()["berat_terima"]) == Decimal("9500")


class TestWeighbridgeMisconfiguration:

    def test_missing_tbs_account_leaves_ticket_posted(self, client, db_session):
        ledger = create_test_ledger(db_session, skip_keys=(SystemAccountKey.INVENTORY_TBS,))
        ticket_id = client.post("/api/v1/weighbridge-tickets/", json=_ticket_payload(ledger)).json()["id"]
        client.post(f"/api/v1/weighbridge-tickets/{ticket_id}/post")

        response = client.post(f"/api/v1/weighbridge-tickets/{ticket_id}/approve", json={})
        assert response.status_code == 422
        assert response.json()["error"] == "ACCOUNT_MISCONFIGURED"
        assert response.json()["details"]["key"] == "INVENTORY_TBS"

        assert client.get(f"/api/v1/weighbridge-tickets/{ticket_id}").json()["status"] == "POSTED"
        balance = client.get(f"/api/v1/inventory/balances/{ledger['tbs'].id}/{ledger['warehouse'].id}").json()
        assert Decimal(balance["qty_on_hand"]) == 0
