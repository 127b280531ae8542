import asyncio
from datetime import date

from fastapi.testclient import TestClient

from app.core.entries import get_entry_by_date, upsert_entry
from app.core.preferences import PHONE_NUMBER, get_preference, set_preference
from app.main import create_app


class TestHealth:
    def test_health(self, client):
        resp = client.get("/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestSmsWebhook:
    def test_weight_reply_is_twiml(self, client, db):
        resp = client.post("/v1/sms/incoming", data={"Body": "150.0", "From": "+15551234567"})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/xml")
        assert "<Message>Logged: 150.0</Message>" in resp.text
        assert get_entry_by_date(db, date(2024, 3, 10)).weight == 150.0

    def test_outlier_then_cancel(self, client, container):
        client.post("/v1/sms/incoming", data={"Body": "150.0"})

        resp = client.post("/v1/sms/incoming", data={"Body": "200.0"})
        assert "Logging in 5m" in resp.text
        assert container.pending.get() is not None

        resp = client.post("/v1/sms/incoming", data={"Body": "CANCEL"})
        assert "<Message>Cancelled</Message>" in resp.text
        assert container.pending.get() is None

    def test_garbage_gets_help_style_reply(self, client):
        resp = client.post("/v1/sms/incoming", data={"Body": "hello there"})
        assert resp.status_code == 200
        assert "Unknown. Send weight" in resp.text

    def test_signature_checked_in_production(self, client, container):
        container.settings.ENVIRONMENT = "production"
        try:
            resp = client.post("/v1/sms/incoming", data={"Body": "150.0"})
            assert resp.status_code == 403

            resp = client.post(
                "/v1/sms/incoming",
                data={"Body": "150.0"},
                headers={"X-Twilio-Signature": "valid"},
            )
            assert resp.status_code == 200
        finally:
            container.settings.ENVIRONMENT = "local"


class TestAuth:
    PHONE = "(555) 123-4567"

    def test_request_code_requires_phone(self, client):
        assert client.post("/v1/auth/request-code", json={}).status_code == 400

    def test_request_and_verify_code(self, client, sms):
        resp = client.post("/v1/auth/request-code", json={"phone": self.PHONE})
        assert resp.status_code == 200

        to, body = sms.sent[-1]
        assert to == "+15551234567"
        code = body.rsplit(" ", 1)[-1]

        resp = client.post("/v1/auth/verify", json={"phone": self.PHONE, "code": code})
        assert resp.status_code == 200
        assert client.get("/v1/auth/status").json() == {"authenticated": True}

        # codes are single use
        resp = client.post("/v1/auth/verify", json={"phone": self.PHONE, "code": code})
        assert resp.status_code == 401

    def test_wrong_code_rejected(self, client):
        client.post("/v1/auth/request-code", json={"phone": self.PHONE})
        resp = client.post("/v1/auth/verify", json={"phone": self.PHONE, "code": "000000"})
        assert resp.status_code == 401
        assert client.get("/v1/auth/status").json() == {"authenticated": False}

    def test_request_code_is_rate_limited(self, client, sms):
        statuses = [
            client.post("/v1/auth/request-code", json={"phone": self.PHONE}).status_code
            for _ in range(4)
        ]
        assert statuses == [200, 200, 200, 429]
        assert len(sms.sent) == 3

    def test_unregistered_phone_gets_generic_reply(self, client, db, sms):
        set_preference(db, PHONE_NUMBER, "+15550000000")
        db.commit()

        resp = client.post("/v1/auth/request-code", json={"phone": self.PHONE})
        assert resp.status_code == 200
        assert resp.json()["message"] == "If registered, code sent"
        assert sms.sent == []

    def test_send_failure_is_reported(self, client, sms):
        sms.fail = True
        resp = client.post("/v1/auth/request-code", json={"phone": self.PHONE})
        assert resp.status_code == 500

    def test_logout(self, authed_client):
        assert authed_client.get("/v1/auth/status").json() == {"authenticated": True}
        authed_client.post("/v1/auth/logout")
        assert authed_client.get("/v1/auth/status").json() == {"authenticated": False}


class TestEntries:
    def test_requires_session(self, client):
        assert client.get("/v1/entries").status_code == 401

    def test_backfill_and_list(self, authed_client):
        resp = authed_client.post("/v1/entries", json={"date": "2024-03-01", "weight": 180.5})
        assert resp.status_code == 200
        assert resp.json()["weight"] == 180.5

        authed_client.post("/v1/entries", json={"date": "2024-03-02", "weight": 181.0})
        authed_client.post("/v1/entries", json={"date": "2024-03-01", "weight": 180.0})

        entries = authed_client.get("/v1/entries").json()
        assert [(e["date"], e["weight"]) for e in entries] == [("2024-03-02", 181.0), ("2024-03-01", 180.0)]

    def test_backfill_validation(self, authed_client):
        assert authed_client.post("/v1/entries", json={"date": "03/01/2024", "weight": 180}).status_code == 422
        assert authed_client.post("/v1/entries", json={"date": "2024-03-01", "weight": 0}).status_code == 422

    def test_edit_and_delete(self, authed_client):
        entry_id = authed_client.post("/v1/entries", json={"date": "2024-03-01", "weight": 180.0}).json()["id"]

        resp = authed_client.put(f"/v1/entries/{entry_id}", json={"weight": 179.5})
        assert resp.json()["weight"] == 179.5

        assert authed_client.delete(f"/v1/entries/{entry_id}").json() == {"success": True}
        assert authed_client.delete(f"/v1/entries/{entry_id}").status_code == 404
        assert authed_client.put(f"/v1/entries/{entry_id}", json={"weight": 1}).status_code == 404

    def test_import_and_export(self, authed_client):
        resp = authed_client.post("/v1/entries/import", json={"entries": [
            {"date": "2024-01-02", "weight": "181.2"},
            {"date": "1/1/2024", "weight": 180},
            {"date": "yesterday", "weight": 180},
            {"date": "2024-01-03", "weight": "heavy"},
        ]})
        body = resp.json()
        assert body["imported"] == 2
        assert body["errors"] == ["Row 3: Invalid date", "Row 4: Invalid weight"]

        resp = authed_client.get("/v1/entries/export")
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.text == "date,weight\n2024-01-01,180.0\n2024-01-02,181.2\n"

    def test_import_with_no_valid_rows(self, authed_client):
        resp = authed_client.post("/v1/entries/import", json={"entries": [{"date": "nope", "weight": 1}]})
        assert resp.status_code == 400

    def test_pending(self, authed_client, container):
        assert authed_client.get("/v1/entries/pending").json() == {"pending": None}

        container.pending.set(200.0, 150.0)
        pending = authed_client.get("/v1/entries/pending").json()["pending"]
        assert pending["weight"] == 200.0
        assert pending["previous_weight"] == 150.0


class TestSettings:
    def test_defaults(self, authed_client):
        assert authed_client.get("/v1/settings").json() == {
            "phone_number": None,
            "timezone": "UTC",
            "display_unit": "lbs",
        }

    def test_update(self, authed_client):
        resp = authed_client.put("/v1/settings", json={"timezone": "Europe/Berlin", "display_unit": "kg"})
        assert resp.json()["timezone"] == "Europe/Berlin"
        assert resp.json()["display_unit"] == "kg"

    def test_rejects_bad_values(self, authed_client):
        assert authed_client.put("/v1/settings", json={"timezone": "Mars/Olympus"}).status_code == 400
        assert authed_client.put("/v1/settings", json={"display_unit": "stone"}).status_code == 400

    def test_phone_change(self, authed_client, sms, db, clock):
        resp = authed_client.post("/v1/settings/phone/request-change", json={"new_phone": "555-987-6543"})
        assert resp.status_code == 200
        to, body = sms.sent[-1]
        assert to == "+15559876543"
        code = body.rsplit(" ", 1)[-1]

        assert authed_client.post("/v1/settings/phone/confirm-change", json={"code": "000000"}).status_code == 400
        assert authed_client.post("/v1/settings/phone/confirm-change", json={"code": code}).status_code == 200

        assert get_preference(db, PHONE_NUMBER) == "+15559876543"
        assert authed_client.get("/v1/settings").json()["phone_number"] == "+*******6543"

    def test_phone_change_expires(self, authed_client, sms, clock):
        authed_client.post("/v1/settings/phone/request-change", json={"new_phone": "5559876543"})
        code = sms.sent[-1][1].rsplit(" ", 1)[-1]

        clock.advance(minutes=16)
        resp = authed_client.post("/v1/settings/phone/confirm-change", json={"code": code})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Verification code expired"


class TestLifespan:
    def test_startup_pass_promotes_off_the_event_loop(self, container, clock, db, monkeypatch):
        container.settings.SCHEDULER_ENABLED = True
        container.pending.set(200.0, 150.0)
        clock.advance(minutes=30)

        seen = {}
        start = container.scheduler.start

        def recording_start():
            try:
                asyncio.get_running_loop()
                seen["on_event_loop"] = True
            except RuntimeError:
                seen["on_event_loop"] = False
            start()

        monkeypatch.setattr(container.scheduler, "start", recording_start)

        with TestClient(create_app(container)) as c:
            assert c.get("/v1/health").status_code == 200
            assert container.scheduler.running
            assert container.pending.get() is None
            assert get_entry_by_date(db, date(2024, 3, 10)).weight == 200.0

        assert seen == {"on_event_loop": False}
        assert not container.scheduler.running
