import os

os.environ["DATABASE_URL"] = "sqlite:///./jogofacil.test.db"
os.environ["DATABASE_URL_STRICT"] = "1"

import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

from fastapi.testclient import TestClient

from jogofacil import crud, schemas
from jogofacil.database import Base, engine
from jogofacil.main import app
from jogofacil.routers import slots as slots_routes

OWNER = {
    "email": "dono@arena.com",
    "password": "senha-dono",
    "name": "Arena Central",
    "role": "FIELD_OWNER",
    "phoneNumber": "(11) 99999-0000",
    "fieldData": {
        "name": "Arena Central Society",
        "location": "Rua das Flores, 100",
        "hourlyRate": 200,
        "cancellationFeePercent": 20,
        "pixConfig": {"key": "dono@arena.com", "name": "Arena Central LTDA"},
        "contactPhone": "(11) 99999-0000",
    },
}

CAPTAIN = {
    "email": "Capitao@Time.com",
    "password": "senha-capitao",
    "name": "Capitão",
    "role": "TEAM_CAPTAIN",
    "phoneNumber": "(11) 98888-7777",
    "subTeams": [
        {"name": "Tigres", "category": "Sub-20"},
        {"name": "Tigres Master", "category": "Veteranos"},
    ],
}


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        self.client = TestClient(app)

    def register(self, payload):
        res = self.client.post("/api/auth/register", json=payload)
        self.assertEqual(res.status_code, 200, res.text)
        return res.json()

    def auth(self, user):
        return {"Authorization": f"Bearer {user['accessToken']}"}

    def owner_and_field(self):
        owner = self.register(OWNER)
        fields = self.client.get("/api/fields").json()
        return owner, fields[0]

    def create_slot(self, owner, field, **overrides):
        body = {"fieldId": field["id"], "date": "2026-11-02", "time": "19:00"}
        body.update(overrides)
        res = self.client.post("/api/slots", json=body, headers=self.auth(owner))
        self.assertEqual(res.status_code, 200, res.text)
        return res.json()


class AuthTests(ApiTestCase):
    def test_register_and_login(self):
        captain = self.register(CAPTAIN)
        self.assertEqual(captain["email"], "capitao@time.com")
        self.assertEqual(captain["subscription"], "NONE")
        self.assertEqual(len(captain["subTeams"]), 2)
        self.assertNotIn("password", captain)
        self.assertEqual(captain["tokenType"], "bearer")

        res = self.client.post("/api/auth/login", json={"email": "capitao@time.com", "password": "errada"})
        self.assertEqual(res.status_code, 401)

        res = self.client.post("/api/auth/login", json={"email": "CAPITAO@time.com", "password": "senha-capitao"})
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual(body["id"], captain["id"])
        self.assertNotIn("password", body)
        self.assertTrue(body["accessToken"])

    def test_duplicate_email(self):
        self.register(CAPTAIN)
        res = self.client.post("/api/auth/register", json=CAPTAIN)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"], "Email já cadastrado")

    def test_admin_cannot_self_register(self):
        res = self.client.post("/api/auth/register", json={**CAPTAIN, "role": "ADMIN"})
        self.assertEqual(res.status_code, 400)

    def test_duplicate_email_lost_race(self):
        self.register(CAPTAIN)
        # The second request passed the lookup before the first one committed.
        with patch.object(crud, "get_user_by_email", return_value=None):
            res = self.client.post("/api/auth/register", json=CAPTAIN)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"], "Email já cadastrado")

        res = self.client.post("/api/auth/login", json={"email": "capitao@time.com", "password": "senha-capitao"})
        self.assertEqual(res.status_code, 200)

    def test_login_with_malformed_email(self):
        res = self.client.post("/api/auth/login", json={"email": "capitao-sem-arroba", "password": "x"})
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["detail"], "Credenciais inválidas")

    def test_owner_registration_creates_field(self):
        owner, field = self.owner_and_field()
        self.assertEqual(owner["subscription"], "FREE")
        self.assertEqual(field["ownerId"], owner["id"])
        self.assertEqual(field["pixConfig"], {"key": "dono@arena.com", "name": "Arena Central LTDA"})
        self.assertEqual(field["hourlyRate"], 200.0)
        self.assertEqual(field["latitude"], -23.55)

    def test_me_requires_token(self):
        self.assertEqual(self.client.get("/api/users/me").status_code, 401)
        captain = self.register(CAPTAIN)
        res = self.client.get("/api/users/me", headers=self.auth(captain))
        self.assertEqual(res.json()["id"], captain["id"])


class UserTests(ApiTestCase):
    def test_update_replaces_sub_teams(self):
        captain = self.register(CAPTAIN)
        res = self.client.put(
            f"/api/users/{captain['id']}",
            json={"name": "Capitão Novo", "subTeams": [{"name": "Leões", "category": "Principal"}]},
            headers=self.auth(captain),
        )
        self.assertEqual(res.status_code, 200, res.text)
        body = res.json()
        self.assertEqual(body["name"], "Capitão Novo")
        self.assertEqual([t["name"] for t in body["subTeams"]], ["Leões"])

    def test_cannot_edit_someone_else(self):
        captain = self.register(CAPTAIN)
        owner = self.register(OWNER)
        res = self.client.put(f"/api/users/{owner['id']}", json={"name": "x"}, headers=self.auth(captain))
        self.assertEqual(res.status_code, 403)

    def test_subscribe_sets_expiry(self):
        captain = self.register(CAPTAIN)
        res = self.client.post(
            f"/api/users/{captain['id']}/subscribe", json={"plan": "MONTHLY"}, headers=self.auth(captain)
        )
        self.assertEqual(res.status_code, 200, res.text)
        body = res.json()
        self.assertEqual(body["subscription"], "MONTHLY")
        expiry = datetime.fromisoformat(body["subscriptionExpiry"])
        self.assertAlmostEqual((expiry - datetime.utcnow()).days, 29, delta=1)

        status = self.client.get("/api/subscriptions/status", headers=self.auth(captain)).json()
        self.assertTrue(status["active"])
        self.assertEqual(status["plan"], "MONTHLY")

    def test_plan_catalogue(self):
        plans = self.client.get("/api/subscriptions/plans").json()
        self.assertEqual([p["id"] for p in plans], ["WEEKLY", "MONTHLY", "ANNUAL"])
        self.assertEqual(plans[2]["days"], 365)


class SlotTests(ApiTestCase):
    def test_create_defaults(self):
        owner, field = self.owner_and_field()
        slots = self.create_slot(owner, field)
        self.assertEqual(len(slots), 1)
        slot = slots[0]
        self.assertEqual(slot["price"], 200.0)
        self.assertEqual(slot["allowedCategories"], ["Livre"])
        self.assertEqual(slot["status"], "available")
        self.assertEqual(slot["matchType"], "AMISTOSO")
        self.assertEqual(slot["durationMinutes"], 60)

    def test_recurring_creates_four_weekly_slots(self):
        owner, field = self.owner_and_field()
        slots = self.create_slot(owner, field, recurring=True)
        self.assertEqual([s["date"] for s in slots], ["2026-11-02", "2026-11-09", "2026-11-16", "2026-11-23"])

    def test_batch_create(self):
        owner, field = self.owner_and_field()
        body = [
            {"fieldId": field["id"], "date": "2026-11-03", "time": "21:00", "price": 180},
            {"fieldId": field["id"], "date": "2026-11-03", "time": "08:00"},
        ]
        res = self.client.post("/api/slots", json=body, headers=self.auth(owner))
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual([s["time"] for s in res.json()], ["08:00", "21:00"])

    def test_invalid_time_is_rejected(self):
        owner, field = self.owner_and_field()
        res = self.client.post(
            "/api/slots",
            json={"fieldId": field["id"], "date": "2026-11-02", "time": "25:00"},
            headers=self.auth(owner),
        )
        self.assertEqual(res.status_code, 422)

    def test_only_owner_creates_slots(self):
        _, field = self.owner_and_field()
        captain = self.register(CAPTAIN)
        res = self.client.post(
            "/api/slots",
            json={"fieldId": field["id"], "date": "2026-11-02", "time": "19:00"},
            headers=self.auth(captain),
        )
        self.assertEqual(res.status_code, 403)

    def test_booking_lifecycle(self):
        owner, field = self.owner_and_field()
        slot = self.create_slot(owner, field, allowedCategories=["Sub-20"])[0]
        captain = self.register(CAPTAIN)
        team = next(t for t in captain["subTeams"] if t["category"] == "Sub-20")

        res = self.client.post(
            f"/api/slots/{slot['id']}/book", json={"subTeamId": team["id"]}, headers=self.auth(captain)
        )
        self.assertEqual(res.status_code, 200, res.text)
        body = res.json()
        self.assertEqual(body["slot"]["status"], "pending_verification")
        self.assertTrue(body["slot"]["isBooked"])
        self.assertEqual(body["slot"]["bookedByTeamName"], "Tigres")
        self.assertEqual(body["slot"]["bookedByUserId"], captain["id"])
        self.assertEqual(body["slot"]["bookedByPhone"], "(11) 98888-7777")
        self.assertTrue(body["whatsappUrl"].startswith("https://wa.me/11999990000?text="))

        res = self.client.post(
            f"/api/slots/{slot['id']}/book", json={"subTeamId": team["id"]}, headers=self.auth(captain)
        )
        self.assertEqual(res.status_code, 409)

        bookings = self.client.get(f"/api/users/{captain['id']}/bookings", headers=self.auth(captain)).json()
        self.assertEqual([b["id"] for b in bookings], [slot["id"]])

        self.assertEqual(
            self.client.post(f"/api/slots/{slot['id']}/confirm", headers=self.auth(captain)).status_code, 403
        )
        res = self.client.post(f"/api/slots/{slot['id']}/confirm", headers=self.auth(owner))
        self.assertEqual(res.json()["status"], "confirmed")

        res = self.client.post(f"/api/slots/{slot['id']}/reject", headers=self.auth(owner))
        body = res.json()
        self.assertEqual(body["status"], "available")
        self.assertFalse(body["isBooked"])
        self.assertIsNone(body["bookedByUserId"])
        self.assertIsNone(body["bookedByTeamName"])

        res = self.client.post(f"/api/slots/{slot['id']}/reject", headers=self.auth(owner))
        self.assertEqual(res.status_code, 409)

    def test_ineligible_category_and_rental_rules(self):
        owner, field = self.owner_and_field()
        restricted = self.create_slot(owner, field, allowedCategories=["Principal"])[0]
        rental = self.create_slot(owner, field, time="21:00", matchType="ALUGUEL")[1]
        captain = self.register(CAPTAIN)
        team_id = captain["subTeams"][0]["id"]

        res = self.client.post(
            f"/api/slots/{restricted['id']}/book", json={"subTeamId": team_id}, headers=self.auth(captain)
        )
        self.assertEqual(res.status_code, 400)

        res = self.client.post(f"/api/slots/{rental['id']}/book", json={"subTeamId": team_id}, headers=self.auth(captain))
        self.assertEqual(res.status_code, 400)

        res = self.client.post(
            f"/api/slots/{rental['id']}/book",
            json={"subTeamId": team_id, "opponentTeamName": "Leões", "opponentTeamPhone": "11 97777-0000"},
            headers=self.auth(captain),
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json()["slot"]["opponentTeamName"], "Leões")
        self.assertIn("Jogo%20contra%3A%20Le%C3%B5es", res.json()["whatsappUrl"])

    def test_owner_cannot_book_own_field(self):
        owner = self.register({**OWNER, "subTeams": [{"name": "Arena FC", "category": "Principal"}]})
        field = self.client.get("/api/fields").json()[0]
        slot = self.create_slot(owner, field)[0]
        res = self.client.post(
            f"/api/slots/{slot['id']}/book",
            json={"subTeamId": owner["subTeams"][0]["id"]},
            headers=self.auth(owner),
        )
        self.assertEqual(res.status_code, 400)

    def test_search_filters(self):
        owner, field = self.owner_and_field()
        self.create_slot(owner, field, time="09:00", allowedCategories=["Sub-20"])
        self.create_slot(owner, field, time="20:00", allowedCategories=["Veteranos"])

        res = self.client.get("/api/slots", params={"category": "Sub-20"})
        self.assertEqual([s["time"] for s in res.json()], ["09:00"])

        res = self.client.get("/api/slots", params={"period": "NIGHT"})
        self.assertEqual([s["time"] for s in res.json()], ["20:00"])

        res = self.client.get("/api/slots", params={"lat": -22.91, "lng": -43.17, "radiusKm": 50})
        self.assertEqual(res.json(), [])

        res = self.client.get("/api/slots", params={"excludeOwnerId": owner["id"]})
        self.assertEqual(res.json(), [])

        res = self.client.get(f"/api/fields/{field['id']}/slots")
        self.assertEqual(len(res.json()), 2)

    def test_raw_update(self):
        owner, field = self.owner_and_field()
        slot = self.create_slot(owner, field)[0]
        res = self.client.put(
            f"/api/slots/{slot['id']}",
            json={"price": 250, "allowedCategories": []},
            headers=self.auth(owner),
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json()["price"], 250.0)
        self.assertEqual(res.json()["allowedCategories"], ["Livre"])

        self.assertEqual(self.client.put("/api/slots/missing", json={}, headers=self.auth(owner)).status_code, 404)

    def test_raw_update_cannot_null_required_attributes(self):
        owner, field = self.owner_and_field()
        slot = self.create_slot(owner, field)[0]
        url = f"/api/slots/{slot['id']}"

        for attr in ("price", "date", "time", "status", "matchType", "isBooked", "hasLocalTeam", "durationMinutes"):
            res = self.client.put(url, json={attr: None}, headers=self.auth(owner))
            self.assertEqual(res.status_code, 422, attr)

        res = self.client.get("/api/slots")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()[0]["price"], 200.0)
        self.assertEqual(res.json()[0]["date"], "2026-11-02")
        self.assertEqual(self.client.get(f"/api/fields/{field['id']}/slots").status_code, 200)

        res = self.client.put(
            url,
            json={"localTeamName": None, "bookedByTeamName": None, "opponentTeamPhone": None},
            headers=self.auth(owner),
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertIsNone(res.json()["bookedByTeamName"])

    def test_verify_receipt(self):
        owner, field = self.owner_and_field()
        slot = self.create_slot(owner, field)[0]
        captain = self.register(CAPTAIN)
        self.client.post(
            f"/api/slots/{slot['id']}/book",
            json={"subTeamId": captain["subTeams"][0]["id"]},
            headers=self.auth(captain),
        )

        result = schemas.VerificationResult(is_valid=True, amount_found=200.0, date_found="hoje", reason="ok")
        with patch.object(slots_routes.receipt_verifier, "verify_pix_receipt", return_value=result) as verify:
            res = self.client.post(
                f"/api/slots/{slot['id']}/verify-receipt",
                files={"receipt": ("comprovante.png", b"\x89PNG fake", "image/png")},
                headers=self.auth(captain),
            )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json(), {"isValid": True, "amountFound": 200.0, "dateFound": "hoje", "reason": "ok"})
        kwargs = verify.call_args.kwargs
        self.assertEqual(kwargs["expected_amount"], 200.0)
        self.assertEqual(kwargs["expected_receiver"], "Arena Central LTDA")

        res = self.client.post(
            f"/api/slots/{slot['id']}/verify-receipt",
            files={"receipt": ("notas.txt", b"texto", "text/plain")},
            headers=self.auth(captain),
        )
        self.assertEqual(res.status_code, 400)


class FieldTests(ApiTestCase):
    def test_owner_edits_field(self):
        owner, field = self.owner_and_field()
        res = self.client.put(
            f"/api/fields/{field['id']}",
            json={
                "name": "Arena Nova",
                "hourlyRate": 250,
                "pixConfig": {"key": "11999990000", "name": "Novo Titular"},
            },
            headers=self.auth(owner),
        )
        self.assertEqual(res.status_code, 200, res.text)
        body = res.json()
        self.assertEqual(body["name"], "Arena Nova")
        self.assertEqual(body["hourlyRate"], 250.0)
        self.assertEqual(body["pixConfig"], {"key": "11999990000", "name": "Novo Titular"})
        self.assertEqual(body["location"], "Rua das Flores, 100")

        stored = self.client.get(f"/api/fields/{field['id']}").json()
        self.assertEqual(stored["pixConfig"], {"key": "11999990000", "name": "Novo Titular"})
        self.assertEqual(stored["name"], "Arena Nova")

    def test_only_owner_edits_field(self):
        _, field = self.owner_and_field()
        captain = self.register(CAPTAIN)
        res = self.client.put(f"/api/fields/{field['id']}", json={"name": "Minha"}, headers=self.auth(captain))
        self.assertEqual(res.status_code, 403)
        self.assertEqual(self.client.get(f"/api/fields/{field['id']}").json()["name"], "Arena Central Society")

    def test_missing_field(self):
        self.assertEqual(self.client.get("/api/fields/missing").status_code, 404)

    def test_field_contact_links(self):
        _, field = self.owner_and_field()
        body = self.client.get(f"/api/fields/{field['id']}/contact").json()
        self.assertTrue(body["whatsappUrl"].startswith("https://wa.me/11999990000?text="))
        self.assertIn("Arena%20Central%20Society", body["whatsappUrl"])
        self.assertEqual(body["mapsUrl"], "https://www.google.com/maps/search/?api=1&query=Rua+das+Flores%2C+100")

    def test_contact_booker(self):
        owner, field = self.owner_and_field()
        slot = self.create_slot(owner, field)[0]
        url = f"/api/slots/{slot['id']}/contact-booker"
        self.assertEqual(self.client.get(url, headers=self.auth(owner)).status_code, 404)

        captain = self.register(CAPTAIN)
        self.client.post(
            f"/api/slots/{slot['id']}/book",
            json={"subTeamId": captain["subTeams"][0]["id"]},
            headers=self.auth(captain),
        )
        self.assertEqual(self.client.get(url, headers=self.auth(captain)).status_code, 403)

        res = self.client.get(url, headers=self.auth(owner))
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.json()["whatsappUrl"].startswith("https://wa.me/11988887777?text="))


class HealthTests(ApiTestCase):
    def test_health(self):
        body = self.client.get("/health").json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["db_source"], "DATABASE_URL")


if __name__ == "__main__":
    unittest.main()
