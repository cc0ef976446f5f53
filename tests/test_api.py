"""HTTP-level tests: routing, auth, status codes and error bodies."""

from datetime import timedelta

from barberbook.auth import hash_password
from barberbook.core import utcnow
from barberbook.models import User

from conftest import auth_headers, make_user


class TestCreateReservation:
    def test_happy_path_returns_201_with_expanded_reservation(self, api, push_sender, client_user, personnel, haircut, beard_trim):
        response = api.post(
            "/reservations",
            json={"services": [haircut.id, beard_trim.id], "date": "2025-03-01T10:00:00Z"},
            headers=auth_headers(client_user),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["endTime"] == "2025-03-01T10:45:00Z"
        assert body["price"] == 30
        assert body["status"] == "pending"
        assert body["personnel"] == {"id": personnel.id, "firstName": "Paolo", "lastName": "Rossi"}
        assert body["client"]["firstName"] == "Sam"
        assert [s["name"] for s in body["services"]] == ["Haircut", "Beard trim"]
        # background push to the personnel ran after the response
        assert [p["token"] for p in push_sender.sent] == ["token-p1"]

    def test_conflict_body(self, api, client_user, haircut):
        payload = {"services": [haircut.id], "date": "2025-03-01T10:00:00Z"}
        api.post("/reservations", json=payload, headers=auth_headers(client_user))

        response = api.post(
            "/reservations",
            json={"services": [haircut.id], "date": "2025-03-01T10:15:00Z"},
            headers=auth_headers(client_user),
        )

        assert response.status_code == 409
        assert response.json() == {"kind": "conflict", "message": "This slot is already booked or blocked."}

    def test_missing_services_is_invalid_request(self, api, client_user):
        response = api.post("/reservations", json={"date": "2025-03-01T10:00:00Z"}, headers=auth_headers(client_user))

        assert response.status_code == 400
        assert response.json()["kind"] == "invalid_request"

    def test_unknown_service_is_not_found(self, api, client_user, shop):
        response = api.post(
            "/reservations",
            json={"services": [999], "date": "2025-03-01T10:00:00Z", "barbershopId": shop.id},
            headers=auth_headers(client_user),
        )

        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"

    def test_requires_authentication(self, api, haircut):
        response = api.post("/reservations", json={"services": [haircut.id], "date": "2025-03-01T10:00:00Z"})
        assert response.status_code == 401
        assert response.json()["kind"] == "unauthorized"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_bad_token_carries_kind(self, api, haircut):
        response = api.post(
            "/reservations",
            json={"services": [haircut.id], "date": "2025-03-01T10:00:00Z"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401
        assert response.json() == {"kind": "unauthorized", "message": "Invalid token"}

    def test_malformed_body_is_invalid_request(self, api, client_user, haircut):
        response = api.post(
            "/reservations",
            json={"services": ["abc"], "date": "2025-03-01T10:00:00Z"},
            headers=auth_headers(client_user),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["kind"] == "invalid_request"
        assert body["message"].startswith("services.0")

    def test_start_with_seconds_is_invalid_request(self, api, client_user, haircut):
        response = api.post(
            "/reservations",
            json={"services": [haircut.id], "date": "2025-03-01T10:00:30Z"},
            headers=auth_headers(client_user),
        )
        assert response.status_code == 400
        assert response.json()["kind"] == "invalid_request"


class TestStatusAndCancel:
    def _book(self, api, client_user, haircut):
        start = (utcnow() + timedelta(days=2)).replace(second=0, microsecond=0).isoformat() + "Z"
        response = api.post(
            "/reservations",
            json={"services": [haircut.id], "date": start},
            headers=auth_headers(client_user),
        )
        assert response.status_code == 201
        return response.json()["id"]

    def test_personnel_confirms_and_loyalty_is_awarded(self, api, client_user, personnel, haircut):
        reservation_id = self._book(api, client_user, haircut)

        response = api.patch(
            f"/reservations/{reservation_id}/status",
            json={"status": "confirmed", "clientId": client_user.id},
            headers=auth_headers(personnel),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

        loyalty = api.get("/loyalty/me", headers=auth_headers(client_user)).json()
        assert loyalty["points"] == 15
        assert len(loyalty["history"]) == 1

    def test_client_cannot_change_status(self, api, client_user, haircut):
        reservation_id = self._book(api, client_user, haircut)

        response = api.patch(
            f"/reservations/{reservation_id}/status",
            json={"status": "confirmed"},
            headers=auth_headers(client_user),
        )

        assert response.status_code == 403
        assert response.json()["kind"] == "forbidden"

    def test_client_cancel_keeps_record(self, api, client_user, personnel, haircut):
        reservation_id = self._book(api, client_user, haircut)

        response = api.delete(f"/reservations/{reservation_id}", headers=auth_headers(client_user))
        assert response.status_code == 200
        assert response.json()["reservation"]["status"] == "cancelled"

        upcoming = api.get("/reservations/upcoming", headers=auth_headers(client_user)).json()
        assert upcoming == []

        listed = api.get(
            f"/reservations/personnel/{personnel.id}", params={"status": "cancelled"}, headers=auth_headers(personnel)
        ).json()
        assert [r["id"] for r in listed] == [reservation_id]


class TestBlockEndpoints:
    def test_block_list_and_unblock(self, api, personnel, shop):
        headers = auth_headers(personnel)
        block = {"date": "2025-03-01", "time": "14:00", "barbershopId": shop.id, "duration": 45}

        created = api.post("/reservations/block", json=block, headers=headers)
        assert created.status_code == 201
        assert created.json()["date"] == "2025-03-01T14:00:00Z"
        assert created.json()["endTime"] == "2025-03-01T14:45:00Z"

        listed = api.get(
            "/reservations/blocked/day", params={"date": "2025-03-01", "barbershopId": shop.id}, headers=headers
        )
        assert [s["id"] for s in listed.json()] == [created.json()["id"]]

        again = api.post("/reservations/block", json=block, headers=headers)
        assert again.status_code == 409

        removed = api.request(
            "DELETE",
            "/reservations/block",
            json={"date": "2025-03-01", "time": "14:00", "barbershopId": shop.id},
            headers=headers,
        )
        assert removed.status_code == 200
        assert removed.json()["message"] == "Blocked slot removed"

        missing = api.request(
            "DELETE",
            "/reservations/block",
            json={"date": "2025-03-01", "time": "14:00", "barbershopId": shop.id},
            headers=headers,
        )
        assert missing.status_code == 404

    def test_block_requires_fields(self, api, personnel):
        response = api.post("/reservations/block", json={"time": "14:00"}, headers=auth_headers(personnel))
        assert response.status_code == 400

    def test_non_positive_duration_is_invalid_request(self, api, personnel, shop):
        response = api.post(
            "/reservations/block",
            json={"date": "2025-03-01", "time": "14:00", "barbershopId": shop.id, "duration": 0},
            headers=auth_headers(personnel),
        )
        assert response.status_code == 400
        assert response.json()["kind"] == "invalid_request"

    def test_clients_cannot_block(self, api, client_user, shop):
        response = api.post(
            "/reservations/block",
            json={"date": "2025-03-01", "time": "14:00", "barbershopId": shop.id},
            headers=auth_headers(client_user),
        )
        assert response.status_code == 403

    def test_blocked_slot_prevents_booking(self, api, client_user, personnel, shop, haircut):
        api.post(
            "/reservations/block",
            json={"date": "2025-03-01", "time": "10:00", "barbershopId": shop.id},
            headers=auth_headers(personnel),
        )

        response = api.post(
            "/reservations",
            json={"services": [haircut.id], "date": "2025-03-01T10:15:00Z"},
            headers=auth_headers(client_user),
        )
        assert response.status_code == 409


class TestUsers:
    def test_login_and_me(self, api, session):
        user = make_user(session, "login@example.com", role="personnel")
        user.password_hash = hash_password("correct horse")
        session.add(user)
        session.commit()

        token = api.post("/auth/login", data={"username": "login@example.com", "password": "correct horse"})
        assert token.status_code == 200

        me = api.get("/me", headers={"Authorization": f"Bearer {token.json()['access_token']}"})
        assert me.json() == {"id": user.id, "email": "login@example.com", "role": "personnel"}

    def test_bad_password(self, api, session):
        user = make_user(session, "login@example.com")
        user.password_hash = hash_password("correct horse")
        session.add(user)
        session.commit()

        response = api.post("/auth/login", data={"username": "login@example.com", "password": "nope"})
        assert response.status_code == 401

    def test_save_fcm_token(self, api, session, client_user):
        response = api.post(
            "/notifications/save-fcm-token", json={"fcmToken": "new-token"}, headers=auth_headers(client_user)
        )
        assert response.status_code == 200

        session.expire_all()
        assert session.get(User, client_user.id).fcm_token == "new-token"

    def test_day_view_for_shop(self, api, session, client_user, personnel, shop, haircut):
        api.post(
            "/reservations",
            json={"services": [haircut.id], "date": "2025-03-01T09:00:00Z"},
            headers=auth_headers(client_user),
        )
        owner = make_user(session, "owner@example.com", role="owner", barbershop_id=shop.id)

        response = api.get("/reservations/day/2025-03-01", params={"barbershopId": shop.id}, headers=auth_headers(owner))

        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_health(self, api):
        assert api.get("/health").json() == {"status": "ok"}


class TestHistoryEndpoints:
    def _book(self, api, client_user, haircut, start):
        response = api.post(
            "/reservations",
            json={"services": [haircut.id], "date": start},
            headers=auth_headers(client_user),
        )
        assert response.status_code == 201
        return response.json()

    def test_admin_lists_every_reservation(self, api, session, client_user, haircut):
        late = self._book(api, client_user, haircut, "2025-03-02T10:00:00Z")
        early = self._book(api, client_user, haircut, "2025-03-01T10:00:00Z")
        admin = make_user(session, "admin@example.com", role="admin")

        response = api.get("/reservations", headers=auth_headers(admin))

        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [early["id"], late["id"]]

    def test_listing_everything_is_admin_only(self, api, client_user, personnel):
        for user in (client_user, personnel):
            response = api.get("/reservations", headers=auth_headers(user))
            assert response.status_code == 403
            assert response.json()["kind"] == "forbidden"

    def test_personnel_reads_client_history(self, api, client_user, personnel, haircut):
        booked = self._book(api, client_user, haircut, "2025-03-01T10:00:00Z")

        response = api.get(f"/reservations/client/{client_user.id}", headers=auth_headers(personnel))

        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [booked["id"]]
        assert response.json()[0]["client"]["firstName"] == "Sam"

    def test_client_history_not_for_clients(self, api, client_user, haircut):
        self._book(api, client_user, haircut, "2025-03-01T10:00:00Z")

        response = api.get(f"/reservations/client/{client_user.id}", headers=auth_headers(client_user))
        assert response.status_code == 403

    def test_client_without_history(self, api, client_user, personnel):
        response = api.get(f"/reservations/client/{client_user.id}", headers=auth_headers(personnel))

        assert response.status_code == 404
        assert response.json() == {"kind": "not_found", "message": "No reservations found for this client."}
