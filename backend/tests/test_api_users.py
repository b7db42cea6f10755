import os
import smtplib
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import jwt

import fakes
from insight_api.core.config import get_settings
from insight_api.models.course import User
from insight_api.services.user_service import hash_password


class UserEndpointTests(fakes.ApiTestCase):
    def register(self, email="Ada@Example.com", password="secret123", name="Ada"):
        return self.client.post("/user/register", json={"name": name, "email": email, "password": password})

    def test_register_returns_user_without_password(self):
        resp = self.register()
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]["email"], "ada@example.com")
        self.assertNotIn("password", data[0])
        self.assertIn("isVerified", data[0])

    def test_register_duplicate_is_409(self):
        self.register()
        resp = self.register(email="ada@example.com")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["success"], False)
        self.assertEqual(resp.json()["message"], "Email is already registered")

    def test_register_validates_body(self):
        resp = self.client.post("/user/register", json={"name": "Ada", "email": "ada@example.com", "password": "x"})
        self.assertEqual(resp.status_code, 422)

    def test_login(self):
        self.register()
        ok = self.client.post("/user/login", json={"email": "ADA@example.com", "password": "secret123"})
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["name"], "Ada")
        self.assertNotIn("token", ok.json())

        bad = self.client.post("/user/login", json={"email": "ada@example.com", "password": "nope"})
        self.assertEqual(bad.status_code, 401)

    @patch.dict(os.environ, {"JWT_SECRET": "unit-test-secret"}, clear=False)
    def test_login_issues_token_when_secret_configured(self):
        get_settings.cache_clear()
        self.register()
        resp = self.client.post("/user/login", json={"email": "ada@example.com", "password": "secret123"})

        token = resp.json()["token"]
        claims = jwt.decode(token, "unit-test-secret", algorithms=["HS256"])
        self.assertEqual(claims["email"], "ada@example.com")

    def test_get_update_and_delete(self):
        user_id = self.register().json()[0]["id"]

        self.assertEqual(self.client.get(f"/user/{user_id}").json()[0]["name"], "Ada")
        self.assertEqual(self.client.get("/user/999").json(), [])
        self.assertEqual(len(self.client.get("/user").json()), 1)

        updated = self.client.put(f"/user/{user_id}", json={"name": "Ada L.", "photo": "https://img.example/a.png"})
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["photo"], "https://img.example/a.png")

        self.assertEqual(self.client.put(f"/user/{user_id}", json={}).status_code, 400)
        self.assertEqual(self.client.put("/user/999", json={"name": "X"}).status_code, 404)

        deleted = self.client.delete(f"/user/{user_id}")
        self.assertEqual(deleted.json()[0]["id"], user_id)
        self.assertEqual(self.client.delete(f"/user/{user_id}").json(), [])

    def test_change_password(self):
        user_id = self.register().json()[0]["id"]

        wrong = self.client.put(
            f"/user/{user_id}/password",
            json={"currentPassword": "bad", "newPassword": "newsecret"},
        )
        self.assertEqual(wrong.status_code, 401)

        ok = self.client.put(
            f"/user/{user_id}/password",
            json={"currentPassword": "secret123", "newPassword": "newsecret"},
        )
        self.assertEqual(ok.status_code, 200)
        login = self.client.post("/user/login", json={"email": "ada@example.com", "password": "newsecret"})
        self.assertEqual(login.status_code, 200)


class PasswordResetTests(fakes.ApiTestCase):
    def setUp(self):
        super().setUp()
        self.add(User(name="Ada", email="ada@example.com", password=hash_password("secret123")))

    def request_code(self):
        with patch("insight_api.services.user_service.send_password_reset_otp") as send:
            resp = self.client.post("/user/forgot-password", json={"email": "ada@example.com"})
        self.assertEqual(resp.status_code, 200)
        send.assert_called_once()
        return send.call_args.args[1]

    def test_reset_with_emailed_code(self):
        otp = self.request_code()
        self.assertEqual(len(otp), 6)

        resp = self.client.post(
            "/user/reset-password",
            json={"email": "ada@example.com", "otp": otp, "newPassword": "brandnew"},
        )
        self.assertEqual(resp.status_code, 200)

        login = self.client.post("/user/login", json={"email": "ada@example.com", "password": "brandnew"})
        self.assertEqual(login.status_code, 200)
        self.assertTrue(login.json()["isVerified"])

        # Codes are single use.
        again = self.client.post(
            "/user/reset-password",
            json={"email": "ada@example.com", "otp": otp, "newPassword": "another1"},
        )
        self.assertEqual(again.status_code, 400)

    def test_wrong_code_rejected(self):
        otp = self.request_code()
        wrong = "000000" if otp != "000000" else "111111"
        resp = self.client.post(
            "/user/reset-password",
            json={"email": "ada@example.com", "otp": wrong, "newPassword": "brandnew"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Invalid or expired code")

    def test_expired_code_rejected(self):
        otp = self.request_code()
        db = self.SessionLocal()
        try:
            user = db.query(User).filter(User.email == "ada@example.com").one()
            user.reset_otp_expires = datetime.now(timezone.utc) - timedelta(minutes=1)
            db.commit()
        finally:
            db.close()

        resp = self.client.post(
            "/user/reset-password",
            json={"email": "ada@example.com", "otp": otp, "newPassword": "brandnew"},
        )
        self.assertEqual(resp.status_code, 400)

    def test_unknown_email_gets_same_answer(self):
        with patch("insight_api.services.user_service.send_password_reset_otp") as send:
            resp = self.client.post("/user/forgot-password", json={"email": "nobody@example.com"})
        self.assertEqual(resp.status_code, 200)
        send.assert_not_called()

    def reset(self, otp, password="brandnew"):
        return self.client.post(
            "/user/reset-password",
            json={"email": "ada@example.com", "otp": otp, "newPassword": password},
        )

    def test_code_discarded_after_repeated_wrong_guesses(self):
        otp = self.request_code()
        wrong = "000000" if otp != "000000" else "111111"

        codes = [self.reset(wrong).status_code for _ in range(5)]
        self.assertEqual(codes, [400] * 5)

        # The right code no longer works once the limit is reached.
        self.assertEqual(self.reset(otp).status_code, 400)
        login = self.client.post("/user/login", json={"email": "ada@example.com", "password": "secret123"})
        self.assertEqual(login.status_code, 200)

    def test_wrong_guesses_below_limit_still_allow_reset(self):
        otp = self.request_code()
        wrong = "000000" if otp != "000000" else "111111"
        for _ in range(4):
            self.reset(wrong)

        self.assertEqual(self.reset(otp).status_code, 200)

    def test_new_code_resets_the_guess_counter(self):
        first = self.request_code()
        wrong = "000000" if first != "000000" else "111111"
        for _ in range(4):
            self.reset(wrong)

        second = self.request_code()
        wrong = "000000" if second != "000000" else "111111"
        self.reset(wrong)
        self.assertEqual(self.reset(second).status_code, 200)

    def test_code_requests_throttled_per_email(self):
        with patch("insight_api.services.user_service.send_password_reset_otp") as send:
            answers = [
                self.client.post("/user/forgot-password", json={"email": "Ada@example.com"}).json()
                for _ in range(5)
            ]

        self.assertEqual(send.call_count, 3)
        self.assertEqual(len({a["message"] for a in answers}), 1)

    @patch.dict(os.environ, {"SMTP_HOST": "smtp.example.com", "SMTP_USER": "bot@example.com"}, clear=False)
    def test_smtp_failure_gets_same_answer_as_unknown_email(self):
        get_settings.cache_clear()
        failure = smtplib.SMTPAuthenticationError(535, b"Bad credentials")
        with patch("insight_api.services.email_service.send_email_via_smtp", side_effect=failure) as send:
            known = self.client.post("/user/forgot-password", json={"email": "ada@example.com"})
            unknown = self.client.post("/user/forgot-password", json={"email": "nobody@example.com"})

        send.assert_called_once()
        self.assertEqual(known.status_code, 200)
        self.assertEqual(known.json(), unknown.json())
