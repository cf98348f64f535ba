"""API tests for contact submission and health."""

from securecontact.contact.database import Message

SCRIPT = "<script>alert(1)</script>"


def post_contact(client, ip="203.0.113.50", **overrides):
    payload = {"name": "Jo", "email": "a@b.com", "message": "0123456789"}
    payload.update(overrides)
    return client.post("/api/contact", json=payload, headers={"X-Forwarded-For": ip})


class TestContactRoute:

    def test_accepts_submission(self, client, db_session) -> None:
        response = post_contact(client)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["encrypted"] is False
        assert body["id"]
        assert "createdAt" in body

        row = db_session.query(Message).filter(Message.id == body["id"]).one()
        assert row.ip_address == "203.0.113.50"

    def test_invalid_email(self, client) -> None:
        response = post_contact(client, email="nope")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid email format"}

    def test_missing_fields(self, client) -> None:
        response = client.post("/api/contact", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "Name is required"

    def test_wrongly_typed_field(self, client) -> None:
        response = client.post("/api/contact", json={"name": 12345, "email": "a@b.com", "message": "0123456789"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_honeypot(self, client) -> None:
        response = post_contact(client, _honey="bot filled this in")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid submission"

    def test_blocked_content(self, client) -> None:
        response = post_contact(client, message=SCRIPT * 6)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Message blocked by security scan"
        assert body["reason"] == "Potentially malicious content detected"

    def test_repeated_abuse_bans_the_address(self, client) -> None:
        for _ in range(5):
            assert post_contact(client, ip="198.51.100.66", message=SCRIPT * 6).status_code == 400

        response = post_contact(client, ip="198.51.100.66")
        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "Access denied"
        assert body["reason"] == "Too many failed content attempts"
        assert body["expiresAt"] is not None

        # Other addresses are unaffected
        assert post_contact(client, ip="198.51.100.67").status_code == 201

    def test_rate_limit(self, client) -> None:
        from securecontact.shared.rate_limit_utils import RateLimiter

        client.app.state.rate_limiters["contact"] = RateLimiter("contact", 2, 60)
        assert post_contact(client).status_code == 201
        assert post_contact(client).status_code == 201

        response = post_contact(client)
        assert response.status_code == 429
        assert response.json()["error"] == "Too many requests"
        assert "Retry-After" in response.headers


class TestHealth:

    def test_health(self, client) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["version"] == "1.0.0"
        assert body["featureFlags"] == {
            "antivirus": True,
            "encryption": False,
            "recaptcha": False,
            "ipBanlist": True,
        }


class TestCors:
    ORIGIN = "http://localhost:3000"

    def test_error_responses_carry_cors_headers(self, client) -> None:
        response = client.post("/api/contact", json={}, headers={"Origin": self.ORIGIN})
        assert response.status_code == 400
        assert response.headers["Access-Control-Allow-Origin"] == self.ORIGIN

    def test_preflight_uses_the_same_origin(self, client) -> None:
        response = client.options(
            "/api/contact",
            headers={"Origin": self.ORIGIN, "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 200
        assert response.headers["Access-Control-Allow-Origin"] == self.ORIGIN

    def test_other_origins_are_not_echoed(self, client) -> None:
        response = client.post("/api/contact", json={}, headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in response.headers
