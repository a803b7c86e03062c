import json
import logging

import pytest
from fastapi.testclient import TestClient

from ledgerbook.journal import service


def _create(client: TestClient, payload: dict) -> dict:
    response = client.post("/api/journal-entries", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _post(client: TestClient, entry_id: int, **params):
    return client.post(f"/api/journal-entries/{entry_id}/post", params=params)


def test_create_draft_entry_generates_reference(client: TestClient, entry_payload):
    first = _create(client, entry_payload())
    second = _create(client, entry_payload(description="April rent", entry_date="2026-04-30"))

    assert first["reference"] == "JE-000001"
    assert second["reference"] == "JE-000002"
    assert first["status"] == "DRAFT"
    assert first["entry_type"] == "JE"
    assert first["posted_at"] is None
    assert [line["line_number"] for line in first["lines"]] == [1, 2]
    assert first["lines"][0]["account_code"] == "5120"
    assert first["lines"][0]["description"] == "March rent"
    assert first["totals"] == {
        "total_debit": "100.00",
        "total_credit": "100.00",
        "difference": "0.00",
        "is_balanced": True,
    }
    assert first["allowed_actions"] == ["edit", "post", "delete"]


def test_explicit_reference_must_be_unique(client: TestClient, entry_payload):
    _create(client, entry_payload(reference="RENT-03"))

    response = client.post("/api/journal-entries", json=entry_payload(reference="RENT-03"))

    assert response.status_code == 400
    assert response.json()["detail"] == "Reference 'RENT-03' is already in use."


def test_unbalanced_draft_can_be_saved_but_not_posted(client: TestClient, entry_payload):
    entry = _create(client, entry_payload(credit="99.99"))
    assert entry["totals"]["is_balanced"] is False
    assert entry["totals"]["difference"] == "0.01"
    assert entry["allowed_actions"] == ["edit", "delete"]

    response = _post(client, entry["id"])

    assert response.status_code == 400
    assert "unbalanced" in response.json()["detail"]
    assert client.get(f"/api/journal-entries/{entry['id']}").json()["status"] == "DRAFT"


def test_zero_amount_entry_cannot_be_posted(client: TestClient, entry_payload):
    entry = _create(client, entry_payload(debit="0", credit="0"))

    response = _post(client, entry["id"])

    assert response.status_code == 400
    assert "no amounts" in response.json()["detail"]


def test_line_rules_are_checked_before_saving(client: TestClient, entry_payload, accounts):
    single = entry_payload()
    single["lines"] = single["lines"][:1]
    response = client.post("/api/journal-entries", json=single)
    assert response.status_code == 400
    assert response.json()["detail"] == "At least two lines are required for a journal entry."

    both_sides = entry_payload()
    both_sides["lines"][0]["credit"] = "100.00"
    response = client.post("/api/journal-entries", json=both_sides)
    assert response.status_code == 400
    assert response.json()["detail"] == "Line 1: enter either a debit or a credit, not both."

    unknown_account = entry_payload()
    unknown_account["lines"][1]["account_id"] = 9999
    response = client.post("/api/journal-entries", json=unknown_account)
    assert response.status_code == 400
    assert response.json()["detail"] == "Line 2: account 9999 was not found."

    assert client.get("/api/journal-entries").json() == []


def test_negative_amounts_and_blank_description_are_rejected(client: TestClient, entry_payload):
    negative = entry_payload(debit="-5.00")
    assert client.post("/api/journal-entries", json=negative).status_code == 422

    blank = client.post("/api/journal-entries", json=entry_payload(description="   "))
    assert blank.status_code == 400
    assert blank.json()["detail"] == "Description is required."


def test_inactive_account_is_rejected(client: TestClient, entry_payload, accounts):
    client.patch(f"/api/chart-of-accounts/{accounts['rent']}", json={"is_active": False})

    response = client.post("/api/journal-entries", json=entry_payload())

    assert response.status_code == 400
    assert "inactive" in response.json()["detail"]


def test_update_draft_replaces_lines(client: TestClient, entry_payload, accounts):
    entry = _create(client, entry_payload())

    response = client.put(
        f"/api/journal-entries/{entry['id']}",
        json={
            "description": "March rent and fees",
            "lines": [
                {"account_id": accounts["rent"], "debit": "150.00", "credit": "0"},
                {"account_id": accounts["cash"], "debit": "0", "credit": "100.00"},
                {"account_id": accounts["payable"], "debit": "0", "credit": "50.00", "description": "Owed"},
            ],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["reference"] == "JE-000001"
    assert data["description"] == "March rent and fees"
    assert len(data["lines"]) == 3
    assert data["lines"][2]["description"] == "Owed"
    assert data["totals"]["total_debit"] == "150.00"
    assert data["totals"]["is_balanced"] is True


def test_failed_update_leaves_entry_unchanged(client: TestClient, entry_payload):
    entry = _create(client, entry_payload())

    response = client.put(
        f"/api/journal-entries/{entry['id']}",
        json={"description": "Changed", "entry_type": "NOPE"},
    )

    assert response.status_code == 400
    assert client.get(f"/api/journal-entries/{entry['id']}").json()["description"] == "March rent"


def test_posting_locks_the_entry(client: TestClient, entry_payload):
    entry = _create(client, entry_payload())

    posted = _post(client, entry["id"], actor="alice")
    assert posted.status_code == 200
    data = posted.json()
    assert data["status"] == "POSTED"
    assert data["posted_at"] is not None
    assert data["allowed_actions"] == ["force_draft"]

    edit = client.put(f"/api/journal-entries/{entry['id']}", json={"description": "Changed"})
    assert edit.status_code == 409
    assert "reversing entry" in edit.json()["detail"]

    again = _post(client, entry["id"])
    assert again.status_code == 409

    delete = client.delete(f"/api/journal-entries/{entry['id']}")
    assert delete.status_code == 409


def test_force_to_draft_is_audited(client: TestClient, entry_payload, caplog):
    entry = _create(client, entry_payload())
    _post(client, entry["id"], actor="alice")

    with caplog.at_level(logging.WARNING, logger="ledgerbook.journal.service"):
        response = client.post(
            f"/api/journal-entries/{entry['id']}/set-draft",
            json={"reason": "Wrong period", "actor": "controller"},
        )

    assert response.status_code == 200
    assert response.json()["status"] == "DRAFT"
    assert response.json()["posted_at"] is None
    assert "forced back to draft" in caplog.text

    events = client.get(f"/api/journal-entries/{entry['id']}/audit").json()
    assert [event["action"] for event in events] == ["post", "force_draft"]
    assert events[0]["actor"] == "alice"
    assert events[1]["actor"] == "controller"
    assert events[1]["reason"] == "Wrong period"
    assert events[1]["before_status"] == "POSTED"
    assert events[1]["after_status"] == "DRAFT"
    assert json.loads(events[1]["event_metadata"])["reference"] == "JE-000001"

    edit = client.put(f"/api/journal-entries/{entry['id']}", json={"description": "Rent, corrected"})
    assert edit.status_code == 200


def test_force_to_draft_requires_reason(client: TestClient, entry_payload):
    entry = _create(client, entry_payload())
    _post(client, entry["id"])

    missing = client.post(f"/api/journal-entries/{entry['id']}/set-draft", json={})
    assert missing.status_code == 422

    blank = client.post(f"/api/journal-entries/{entry['id']}/set-draft", json={"reason": "   "})
    assert blank.status_code == 400
    assert client.get(f"/api/journal-entries/{entry['id']}").json()["status"] == "POSTED"


def test_force_to_draft_on_draft_records_nothing(client: TestClient, entry_payload):
    entry = _create(client, entry_payload())

    response = client.post(f"/api/journal-entries/{entry['id']}/set-draft", json={"reason": "Check"})

    assert response.status_code == 200
    assert response.json()["status"] == "DRAFT"
    assert client.get(f"/api/journal-entries/{entry['id']}/audit").json() == []


def test_delete_draft_hides_it_but_keeps_audit(client: TestClient, entry_payload):
    entry = _create(client, entry_payload())

    response = client.delete(f"/api/journal-entries/{entry['id']}", params={"actor": "bob"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert client.get(f"/api/journal-entries/{entry['id']}").status_code == 404
    assert client.get("/api/journal-entries").json() == []
    events = client.get(f"/api/journal-entries/{entry['id']}/audit").json()
    assert [(event["action"], event["actor"]) for event in events] == [("delete", "bob")]


def test_missing_entry_returns_not_found(client: TestClient, accounts):
    assert client.get("/api/journal-entries/404").status_code == 404
    assert client.put("/api/journal-entries/404", json={"description": "x"}).status_code == 404
    assert client.post("/api/journal-entries/404/post").status_code == 404
    assert client.delete("/api/journal-entries/404").status_code == 404
    assert client.get("/api/journal-entries/404/audit").json()["detail"] == "Journal entry not found."


def test_list_filters(client: TestClient, entry_payload, accounts):
    rent = _create(client, entry_payload())
    fees = _create(
        client,
        {
            "entry_date": "2026-04-15",
            "description": "Consulting invoice",
            "reference": "INV-7",
            "lines": [
                {"account_id": accounts["cash"], "debit": "250.00", "credit": "0"},
                {"account_id": accounts["fees"], "debit": "0", "credit": "250.00"},
            ],
        },
    )
    _post(client, fees["id"])

    rows = client.get("/api/journal-entries").json()
    assert [row["id"] for row in rows] == [fees["id"], rent["id"]]
    assert rows[0]["line_count"] == 2
    assert rows[0]["total_debit"] == "250.00"
    assert rows[0]["is_balanced"] is True

    def ids(**params):
        return [row["id"] for row in client.get("/api/journal-entries", params=params).json()]

    assert ids(status="POSTED") == [fees["id"]]
    assert ids(status="DRAFT") == [rent["id"]]
    assert ids(search="consult") == [fees["id"]]
    assert ids(search="INV-") == [fees["id"]]
    assert ids(account_id=accounts["rent"]) == [rent["id"]]
    assert ids(start_date="2026-04-01") == [fees["id"]]
    assert ids(end_date="2026-03-31") == [rent["id"]]
    assert ids(limit=1, offset=1) == [rent["id"]]


def test_entry_types(client: TestClient, entry_payload):
    codes = [row["code"] for row in client.get("/api/journal-entry-types").json()]
    assert {"JE", "INV", "PMT", "EXP", "BNK", "ADJ", "OB", "CE"} <= set(codes)

    created = client.post("/api/journal-entry-types", json={"code": "acc", "name": "Accrual"})
    assert created.status_code == 201
    assert created.json()["code"] == "ACC"

    duplicate = client.post("/api/journal-entry-types", json={"code": "ACC", "name": "Accrual again"})
    assert duplicate.status_code == 409

    entry = _create(client, entry_payload(entry_type="acc"))
    assert entry["entry_type"] == "ACC"

    unknown = client.post("/api/journal-entries", json=entry_payload(entry_type="XYZ"))
    assert unknown.status_code == 400
    assert unknown.json()["detail"] == "Unknown journal entry type 'XYZ'."


@pytest.mark.parametrize(
    "debit, credit",
    [
        ("12345678901234567.89", "12345678901234567.88"),
        ("10.005", "10.01"),
    ],
)
def test_amounts_that_do_not_fit_two_decimal_places_are_rejected(client: TestClient, entry_payload, debit, credit):
    response = client.post("/api/journal-entries", json=entry_payload(debit=debit, credit=credit))

    assert response.status_code == 422
    assert client.get("/api/journal-entries").json() == []


def test_largest_storable_amount_round_trips(client: TestClient, entry_payload):
    entry = _create(client, entry_payload(debit="999999999999.99", credit="999999999999.99"))

    assert entry["lines"][0]["debit"] == "999999999999.99"
    assert _post(client, entry["id"]).status_code == 200


def test_blank_reference_on_update_keeps_existing_reference(client: TestClient, entry_payload):
    entry = _create(client, entry_payload(reference="RENT-03"))

    response = client.put(f"/api/journal-entries/{entry['id']}", json={"reference": "  "})

    assert response.status_code == 400
    assert response.json()["detail"] == "Reference cannot be blank."
    assert client.get(f"/api/journal-entries/{entry['id']}").json()["reference"] == "RENT-03"


def test_reference_taken_between_check_and_save_returns_conflict(client: TestClient, entry_payload, monkeypatch):
    taken = _create(client, entry_payload())
    # another request claimed the reference after this one checked it
    monkeypatch.setattr(service, "_resolve_reference", lambda *args, **kwargs: taken["reference"])

    created = client.post("/api/journal-entries", json=entry_payload())
    assert created.status_code == 409
    assert "already in use" in created.json()["detail"]

    monkeypatch.undo()
    other = _create(client, entry_payload(reference="RENT-04"))
    monkeypatch.setattr(service, "_resolve_reference", lambda *args, **kwargs: taken["reference"])

    updated = client.put(f"/api/journal-entries/{other['id']}", json={"reference": "RENT-05"})
    assert updated.status_code == 409
    assert client.get(f"/api/journal-entries/{other['id']}").json()["reference"] == "RENT-04"
