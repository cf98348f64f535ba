"""API tests for the admin message and security endpoints."""

import uuid

from securecontact.admin.service import AdminQueryService

SCRIPT = "<script>alert(1)</script>"


def submit(client, ip="203.0.113.80", message="0123456789"):
    response = client.post(
        "/api/contact",
        json={"name": "Jo", "email": "a@b.com", "message": message},
        headers={"X-Forwarded-For": ip},
    )
    return response


class TestMessagesRoute:

    def test_list(self, client, admin_headers) -> None:
        ids = [submit(client).json()["id"] for _ in range(3)]

        response = client.get("/api/messages", params={"limit": 2}, headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["items"]) == 2
        assert body["pagination"] == {"currentPage": 1, "totalPages": 2, "totalMessages": 3, "limit": 2}
        assert body["filters"] == {"quarantined": None, "encryptionEnabled": False}
        assert {item["id"] for item in body["items"]} <= set(ids)

        item = body["items"][0]
        assert item["message"] == "0123456789"
        assert item["ipAddress"] == "203.0.113.80"
        assert item["isQuarantined"] is False

    def test_encrypted_messages_are_listed_in_plaintext(self, client, admin_headers) -> None:
        client.app.state.intake_pipeline.encryption_key = "route-test-key"
        client.app.state.admin_service = AdminQueryService(encryption_key="route-test-key")
        for _ in range(3):
            assert submit(client).json()["encrypted"] is True

        body = client.get("/api/messages", headers=admin_headers).json()
        assert [item["message"] for item in body["items"]] == ["0123456789"] * 3
        assert all(item["isEncrypted"] for item in body["items"])
        assert body["filters"]["encryptionEnabled"] is True

    def test_quarantine_filter(self, client, admin_headers) -> None:
        submit(client)
        flagged = submit(client, message="exploit payload shellcode backdoor rootkit").json()["id"]

        response = client.get("/api/messages", params={"quarantined": "true"}, headers=admin_headers)
        assert [item["id"] for item in response.json()["items"]] == [flagged]

    def test_invalid_limit(self, client, admin_headers) -> None:
        response = client.get("/api/messages", params={"limit": 500}, headers=admin_headers)
        assert response.status_code == 400

    def test_non_numeric_page(self, client, admin_headers) -> None:
        response = client.get("/api/messages", params={"page": "abc"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_delete(self, client, admin_headers) -> None:
        message_id = submit(client).json()["id"]

        response = client.delete(f"/api/messages/{message_id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["success"] is True

        assert client.delete(f"/api/messages/{message_id}", headers=admin_headers).status_code == 404

    def test_delete_malformed_id(self, client, admin_headers) -> None:
        response = client.delete("/api/messages/not-a-uuid", headers=admin_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid message ID"}

    def test_delete_requires_admin(self, client) -> None:
        assert client.delete(f"/api/messages/{uuid.uuid4()}").status_code == 401


class TestSecurityRoutes:

    def test_manual_ban_and_unban(self, client, admin_headers) -> None:
        response = client.post(
            "/api/security/bans",
            json={"ipAddress": "198.51.100.99", "reason": "spam", "durationHours": 2},
            headers=admin_headers,
        )
        assert response.status_code == 201
        ban = response.json()["ban"]
        assert ban["ipAddress"] == "198.51.100.99"
        assert ban["isActive"] is True
        assert ban["expiresAt"] is not None

        assert submit(client, ip="198.51.100.99").status_code == 403

        bans = client.get("/api/security/bans", headers=admin_headers).json()["bans"]
        assert [b["ipAddress"] for b in bans] == ["198.51.100.99"]

        response = client.delete("/api/security/bans/198.51.100.99", headers=admin_headers)
        assert response.status_code == 200
        assert submit(client, ip="198.51.100.99").status_code == 201

        assert client.delete("/api/security/bans/198.51.100.99", headers=admin_headers).status_code == 404

    def test_permanent_ban(self, client, admin_headers) -> None:
        response = client.post("/api/security/bans", json={"ipAddress": "198.51.100.5"}, headers=admin_headers)
        ban = response.json()["ban"]
        assert ban["expiresAt"] is None
        assert ban["reason"] == "Manually banned by admin"

    def test_invalid_duration(self, client, admin_headers) -> None:
        response = client.post(
            "/api/security/bans",
            json={"ipAddress": "198.51.100.5", "durationHours": -1},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_stats(self, client, admin_headers) -> None:
        submit(client)
        for _ in range(5):
            submit(client, ip="198.51.100.7", message=SCRIPT * 6)

        response = client.get("/api/security/stats", headers=admin_headers)
        assert response.status_code == 200
        stats = response.json()["stats"]
        assert stats["messages"]["total_messages"] == 1
        assert stats["bans"]["active_bans"] == 1
        assert stats["features"]["ipBanlist"] is True

    def test_requires_admin(self, client) -> None:
        assert client.get("/api/security/stats").status_code == 401
        assert client.get("/api/security/bans").status_code == 401
