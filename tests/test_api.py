"""Tests API / API tests."""

from datetime import date, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import PASSWORD, auth_headers, create_user
from ltipn.api import deps
from ltipn.models.user import UserRole


@pytest.fixture
async def booking_id(client, agent, society):
    resp = await client.post(
        "/api/bookings/",
        json={"numero_bk": "ORD-1", "society_id": society.id, "type_voyage": "DRY", "nbr_ltc": 2},
        headers=auth_headers(agent),
    )
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "running"


@pytest.mark.asyncio
async def test_security_headers(client):
    resp = await client.get("/api/", headers={"X-Request-ID": "req-1"})
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Request-ID"] == "req-1"


# --- Authentification / Authentication ---

@pytest.mark.asyncio
async def test_login_and_me(client, agent):
    resp = await client.post("/api/auth/login", json={"username": "agent", "password": PASSWORD})
    assert resp.status_code == 200
    tokens = resp.json()
    assert tokens["token_type"] == "bearer"

    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert resp.status_code == 200
    me = resp.json()
    assert me["username"] == "agent"
    assert me["role"] == "Booking_Agent"
    assert me["society"]["society_name"] == "Atlantic Fish"

    resp = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_login_rejects_bad_password(client, agent):
    resp = await client.post("/api/auth/login", json={"username": "agent", "password": "wrong"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_rejects_disabled_account(client, db):
    await create_user(db, "gone", UserRole.BOOKING_AGENT, is_active=False)
    resp = await client.post("/api/auth/login", json={"username": "gone", "password": PASSWORD})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Account disabled"


@pytest.mark.asyncio
async def test_requests_require_a_token(client):
    resp = await client.get("/api/bookings/")
    assert resp.status_code in (401, 403)

    resp = await client.get("/api/bookings/", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token_is_not_an_access_token(client, agent):
    resp = await client.post("/api/auth/login", json={"username": "agent", "password": PASSWORD})
    refresh = resp.json()["refresh_token"]
    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {refresh}"})
    assert resp.status_code == 401


# --- Reservations et voyages / Bookings and voyages ---

@pytest.mark.asyncio
async def test_booking_and_voyage_flow(client, agent, validator, booking_id):
    resp = await client.get(f"/api/bookings/{booking_id}", headers=auth_headers(agent))
    booking = resp.json()
    assert booking["status"] == "Pending"
    assert booking["booking_reference"] == f"BK{date.today():%Y%m%d}001"
    assert booking["society"]["society_name"] == "Atlantic Fish"
    assert booking["active_temporisation"] is None

    resp = await client.post(f"/api/bookings/{booking_id}/validate", headers=auth_headers(validator))
    assert resp.status_code == 200
    assert resp.json()["status"] == "Validated"

    for tc in ("TC-1", "TC-2"):
        resp = await client.post(
            f"/api/bookings/{booking_id}/voyages", json={"numero_tc": tc}, headers=auth_headers(validator)
        )
        assert resp.status_code == 201

    resp = await client.post(
        f"/api/bookings/{booking_id}/voyages", json={"numero_tc": "TC-3"}, headers=auth_headers(validator)
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "quota_exceeded"

    resp = await client.get(f"/api/bookings/{booking_id}/voyages", headers=auth_headers(validator))
    plan = resp.json()
    assert plan["remaining_voyages"] == 0
    assert plan["can_add_voyage"] is False
    assert [v["voyage_number"] for v in plan["voyages"]] == [1, 2]

    voyage_id = plan["voyages"][0]["id"]
    resp = await client.post(
        f"/api/voyages/{voyage_id}/depart",
        json={
            "departure_type": "Empty",
            "departure_city": "Casablanca",
            "departure_date": date.today().isoformat(),
            "truck": {"external": {
                "society_transp_name": "Transports Atlas",
                "camion_matricule": "99999-B-7",
                "driver_name": "Youssef",
                "driver_phone": "0611111111",
            }},
        },
        headers=auth_headers(validator),
    )
    assert resp.status_code == 200
    voyage = resp.json()
    assert voyage["status"] == "InProgress"
    assert voyage["camion_first"]["camion_matricule"] == "99999-B-7"


@pytest.mark.asyncio
async def test_temporisation_flow(client, agent, validator, booking_id):
    resp = await client.post(
        f"/api/bookings/{booking_id}/temporise",
        json={
            "reason_temporisation": "port congestion",
            "estimated_validation_date": (date.today() + timedelta(days=5)).isoformat(),
        },
        headers=auth_headers(validator),
    )
    assert resp.status_code == 200
    active = resp.json()["active_temporisation"]
    assert active["creator_response"] == "Pending"
    assert active["temporised_by"]["username"] == "validator"
    assert active["days_until_estimated_validation"] == 5

    resp = await client.post(
        f"/api/bookings/temporisations/{active['id']}/respond",
        json={"creator_response": "Refused", "creator_response_notes": "client waiting"},
        headers=auth_headers(agent),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "Pending"

    resp = await client.post(
        f"/api/bookings/temporisations/{active['id']}/respond",
        json={"creator_response": "Accepted"},
        headers=auth_headers(agent),
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "already_responded"

    resp = await client.get(f"/api/bookings/{booking_id}/temporisations", headers=auth_headers(agent))
    assert len(resp.json()) == 1


@pytest.mark.asyncio
async def test_error_mapping(client, admin, agent, validator, booking_id):
    resp = await client.get("/api/bookings/999", headers=auth_headers(admin))
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"

    await client.post(f"/api/bookings/{booking_id}/validate", headers=auth_headers(validator))
    resp = await client.post(f"/api/bookings/{booking_id}/validate", headers=auth_headers(validator))
    assert resp.status_code == 409
    assert resp.json()["code"] == "invalid_state"

    resp = await client.post(f"/api/bookings/{booking_id}/validate", headers=auth_headers(agent))
    assert resp.status_code == 403

    resp = await client.post(
        f"/api/bookings/{booking_id}/temporise",
        json={"reason_temporisation": " ", "estimated_validation_date": date.today().isoformat()},
        headers=auth_headers(validator),
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_validation_error_body(client, agent, society):
    resp = await client.post(
        "/api/bookings/",
        json={"numero_bk": "ORD-1", "society_id": society.id, "type_voyage": "DRY", "nbr_ltc": 0},
        headers=auth_headers(agent),
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == "validation_error"
    assert body["field"] == "nbr_ltc"
    assert "nbr_ltc" in body["errors"]


@pytest.mark.asyncio
async def test_agent_can_not_read_other_agent_booking(client, db, booking_id):
    other = await create_user(db, "other", UserRole.BOOKING_AGENT)
    resp = await client.get(f"/api/bookings/{booking_id}", headers=auth_headers(other))
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"

    resp = await client.get("/api/bookings/", headers=auth_headers(other))
    assert resp.json() == []


@pytest.mark.asyncio
async def test_delete_pending_booking(client, agent, booking_id):
    resp = await client.delete(f"/api/bookings/{booking_id}", headers=auth_headers(agent))
    assert resp.status_code == 204
    resp = await client.get(f"/api/bookings/{booking_id}", headers=auth_headers(agent))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_notifications_go_out_after_commit(client, agent, society, monkeypatch):
    order = []
    commit = AsyncSession.commit

    async def recording_commit(self):
        order.append("commit")
        await commit(self)

    def recording_deliver(outbox, sender=None):
        order.append("deliver")
        return len(outbox.drain())

    monkeypatch.setattr(AsyncSession, "commit", recording_commit)
    monkeypatch.setattr(deps, "deliver", recording_deliver)

    resp = await client.post(
        "/api/bookings/",
        json={"numero_bk": "ORD-1", "society_id": society.id, "type_voyage": "DRY", "nbr_ltc": 1},
        headers=auth_headers(agent),
    )
    assert resp.status_code == 201
    assert "deliver" in order
    assert order.index("commit") < order.index("deliver")


@pytest.mark.asyncio
async def test_clearing_booking_society_is_rejected(client, agent, booking_id):
    resp = await client.put(
        f"/api/bookings/{booking_id}", json={"society_id": None}, headers=auth_headers(agent)
    )
    assert resp.status_code == 422
    assert resp.json()["field"] == "society_id"


# --- Donnees de reference / Master data ---

@pytest.mark.asyncio
async def test_society_admin_routes(client, admin, agent):
    resp = await client.post("/api/societies/", json={"society_name": "Sud Pack"}, headers=auth_headers(admin))
    assert resp.status_code == 201

    resp = await client.post("/api/societies/", json={"society_name": "Sud Pack"}, headers=auth_headers(admin))
    assert resp.status_code == 409
    assert resp.json()["field"] == "society_name"

    resp = await client.post("/api/societies/", json={"society_name": "Nord"}, headers=auth_headers(agent))
    assert resp.status_code == 403

    resp = await client.get("/api/societies/summary", headers=auth_headers(agent))
    assert {s["society_name"] for s in resp.json()} == {"Atlantic Fish", "Sud Pack"}


@pytest.mark.asyncio
async def test_camion_routes(client, admin, camion):
    resp = await client.get("/api/camions/summary", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()[0]["camion_matricule"] == "12345-A-1"

    resp = await client.delete(f"/api/camions/{camion.id}", headers=auth_headers(admin))
    assert resp.status_code == 204


# --- Historique et exports / Audit and exports ---

@pytest.mark.asyncio
async def test_audit_is_admin_only(client, admin, agent, booking_id):
    resp = await client.get("/api/audit/", headers=auth_headers(agent))
    assert resp.status_code == 403

    resp = await client.get("/api/audit/", params={"entity_type": "booking"}, headers=auth_headers(admin))
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 1
    assert data["items"][0]["action"] == "CREATE"
    assert data["items"][0]["user"] == "agent"


@pytest.mark.asyncio
async def test_export_csv(client, validator, agent, booking_id):
    await client.post(f"/api/bookings/{booking_id}/validate", headers=auth_headers(validator))
    await client.post(
        f"/api/bookings/{booking_id}/voyages", json={"numero_tc": "TC-1"}, headers=auth_headers(validator)
    )

    resp = await client.get("/api/exports/voyages", params={"format": "csv"}, headers=auth_headers(validator))
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert f"etat_suivi_voyages_{date.today():%Y%m%d}.csv" in resp.headers["content-disposition"]
    assert resp.content.startswith(b"\xef\xbb\xbf")
    lines = resp.content.decode("utf-8-sig").splitlines()
    assert len(lines) == 2
    assert "TC-1" in lines[1]

    resp = await client.get("/api/exports/voyages", params={"format": "csv"}, headers=auth_headers(agent))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_export_xlsx(client, validator):
    resp = await client.get("/api/exports/voyages", headers=auth_headers(validator))
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/vnd.openxmlformats")
