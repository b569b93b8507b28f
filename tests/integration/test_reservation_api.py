from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

RESERVATIONS = "/v1/venues/ven_001/reservations"


def _in_hours(hours: float) -> str:
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat()


def _create_table(client, hours: float = 5, holder_id: str = "usr_001") -> dict:
    response = client.post(
        RESERVATIONS,
        json={
            "holderId": holder_id,
            "resourceType": "table",
            "startAt": _in_hours(hours),
            "durationOrPartySize": 4,
            "holderName": "Alex Diner",
        },
    )
    assert response.status_code == 201
    return response.json()


def test_create_confirm_with_staff_and_read_back(client, publisher) -> None:
    created = _create_table(client)
    assert created["status"] == "PENDING"
    assert created["canCancel"] is True
    assert created["source"] == {"kind": "INTERNAL", "system": "LEDGER", "externalId": None}

    confirm = client.post(
        f"{RESERVATIONS}/{created['reservationId']}/confirm",
        json={"staffId": "stf_7", "staffName": "Jordan"},
    )
    assert confirm.status_code == 200
    assert confirm.json()["status"] == "CONFIRMED"

    fetched = client.get(f"{RESERVATIONS}/{created['reservationId']}")
    assert fetched.status_code == 200
    assert fetched.json()["version"] == 2
    assert fetched.json()["metadata"]["assignedStaffId"] == "stf_7"
    assert publisher.types() == [
        "RESERVATION_CREATED",
        "RESERVATION_STATUS_CHANGED",
        "STAFF_ASSIGNMENT",
    ]
    assert publisher.messages[0][0] == "notifications:ven_001"


def test_invalid_transition_returns_conflict_envelope(client) -> None:
    created = _create_table(client)

    response = client.post(
        f"{RESERVATIONS}/{created['reservationId']}/seat",
        headers={"X-Request-Id": "req-seat-1"},
    )

    assert response.status_code == 409
    body = response.json()
    assert body["error"]["code"] == "INVALID_TRANSITION"
    assert body["error"]["details"] == {"from": "PENDING", "to": "SEATED"}
    assert body["requestId"] == "req-seat-1"


def test_unknown_action_and_bad_payload_are_validation_errors(client) -> None:
    created = _create_table(client)

    unknown = client.post(f"{RESERVATIONS}/{created['reservationId']}/teleport")
    assert unknown.status_code == 400
    assert unknown.json()["error"]["code"] == "VALIDATION_ERROR"

    missing_holder = client.post(
        RESERVATIONS,
        json={"resourceType": "table", "startAt": _in_hours(5), "durationOrPartySize": 2},
    )
    assert missing_holder.status_code == 400
    assert missing_holder.json()["error"]["code"] == "VALIDATION_ERROR"
    assert missing_holder.json()["error"]["details"]["errors"]


def test_resource_not_offered_is_validation_error(client) -> None:
    response = client.post(
        RESERVATIONS,
        json={
            "holderId": "usr_001",
            "resourceType": "bowlingLane",
            "startAt": _in_hours(5),
            "durationOrPartySize": 60,
        },
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_unknown_reservation_is_not_found(client) -> None:
    response = client.get(f"{RESERVATIONS}/res_missing")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_holder_cancel_window(client) -> None:
    soon = _create_table(client, hours=1.5)
    later = _create_table(client, hours=6)

    closed = client.post(
        f"{RESERVATIONS}/{soon['reservationId']}/cancel",
        json={"holderId": "usr_001"},
    )
    assert closed.status_code == 409
    assert closed.json()["error"]["code"] == "CANCELLATION_WINDOW_CLOSED"

    cancelled = client.post(
        f"{RESERVATIONS}/{later['reservationId']}/cancel",
        json={"holderId": "usr_001", "reason": "sick"},
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "CANCELLED"
    assert cancelled.json()["canCancel"] is False


def test_external_reservation_lifecycle(client, publisher) -> None:
    payload = {
        "system": "OpenTable",
        "externalId": "ot-555",
        "holderId": "usr_001",
        "startAt": _in_hours(48).replace("+00:00", "Z"),
        "durationOrPartySize": 2,
    }
    first = client.post("/v1/venues/ven_001/external-reservations", json=payload)
    second = client.post("/v1/venues/ven_001/external-reservations", json=payload)

    assert first.status_code == 201
    assert first.json()["status"] == "CONFIRMED"
    assert second.json()["reservationId"] == first.json()["reservationId"]
    reservation_path = f"{RESERVATIONS}/{first.json()['reservationId']}"

    holder_cancel = client.post(f"{reservation_path}/cancel", json={"holderId": "usr_001"})
    assert holder_cancel.status_code == 409
    assert holder_cancel.json()["error"]["code"] == "UNSUPPORTED_SOURCE"

    venue_cancel = client.post(f"{reservation_path}/venue-cancel")
    assert venue_cancel.status_code == 409
    assert venue_cancel.json()["error"]["code"] == "UNSUPPORTED_SOURCE"

    synced = client.post(
        f"{reservation_path}/external-status",
        json={"system": "OpenTable", "status": "CANCELLED"},
    )
    assert synced.status_code == 200
    assert synced.json()["status"] == "CANCELLED"
    assert synced.json()["source"]["externalId"] == "ot-555"
    assert publisher.types() == ["RESERVATION_CREATED", "RESERVATION_STATUS_CHANGED"]


def test_modify_and_metadata_update(client, publisher) -> None:
    created = _create_table(client)
    reservation_path = f"{RESERVATIONS}/{created['reservationId']}"

    modified = client.patch(
        reservation_path,
        json={"holderId": "usr_001", "durationOrPartySize": 6, "specialRequests": "high chair"},
    )
    assert modified.status_code == 200
    assert modified.json()["durationOrPartySize"] == 6
    assert modified.json()["metadata"]["specialRequests"] == "high chair"

    tagged = client.patch(f"{reservation_path}/metadata", json={"metadata": {"tableNumber": "12"}})
    assert tagged.status_code == 200
    assert tagged.json()["metadata"] == {"specialRequests": "high chair", "tableNumber": "12"}
    assert tagged.json()["version"] == 3

    empty = client.patch(f"{reservation_path}/metadata", json={"metadata": {}})
    assert empty.status_code == 400
    assert publisher.types()[-1] == "RESERVATION_MODIFIED"


def test_venue_listing_window_and_status_filter(client) -> None:
    in_window = _create_table(client, hours=3)
    _create_table(client, hours=30)

    response = client.get(
        RESERVATIONS,
        params={"from": _in_hours(0), "to": _in_hours(24), "status": "PENDING"},
    )

    assert response.status_code == 200
    body = response.json()
    assert [item["reservationId"] for item in body["reservations"]] == [
        in_window["reservationId"]
    ]
    assert body["usedFallback"] is False


def test_valet_reservation_exposes_valet_status(client) -> None:
    response = client.post(
        RESERVATIONS,
        json={
            "holderId": "usr_001",
            "resourceType": "valet",
            "startAt": _in_hours(5),
            "durationOrPartySize": 1,
            "vehicle": {"licensePlate": "7abc123", "make": "Volvo"},
        },
    )

    assert response.status_code == 201
    assert response.json()["valetStatus"] == "PENDING"
    assert response.json()["vehicle"]["licensePlate"] == "7ABC123"
