"""Tests for custom booking-page domains"""

from tests.conftest import auth_headers_for


def test_set_and_read_domain(client, auth_headers):
    response = client.post("/api/user/domain", json={"domain": "Book.Example.com "}, headers=auth_headers)

    assert response.json() == {"success": True, "domain": "book.example.com", "verified": False}
    assert client.get("/api/user/domain", headers=auth_headers).json() == {
        "domain": "book.example.com",
        "verified": False,
    }


def test_invalid_domain(client, auth_headers):
    response = client.post("/api/user/domain", json={"domain": "not a domain"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid domain format"}


def test_domain_is_unique_across_users(client, other_user, auth_headers):
    client.post("/api/user/domain", json={"domain": "book.example.com"}, headers=auth_headers)

    response = client.post(
        "/api/user/domain", json={"domain": "book.example.com"}, headers=auth_headers_for(other_user)
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Domain is already in use"}


def test_verification_stays_pending(client, auth_headers):
    client.post("/api/user/domain", json={"domain": "book.example.com"}, headers=auth_headers)

    result = client.post("/api/user/domain/verify", headers=auth_headers).json()

    assert result["status"] == "pending"
    assert [r["type"] for r in result["dnsRecords"]] == ["CNAME", "TXT"]
    assert result["dnsRecords"][1]["name"] == "_verification.book.example.com"


def test_verify_without_domain(client, auth_headers):
    response = client.post("/api/user/domain/verify", headers=auth_headers)

    assert response.json() == {"error": "No custom domain configured"}


def test_verify_query_domain(client, auth_headers):
    result = client.get(
        "/api/user/domain/verify", params={"domain": "Cal.Example.org"}, headers=auth_headers
    ).json()

    assert result["verified"] is False
    assert result["dnsRecords"][0] == {
        "type": "CNAME",
        "name": "cal.example.org",
        "value": result["dnsRecords"][0]["value"],
        "verified": False,
    }


def test_verify_query_requires_a_domain(client, auth_headers):
    response = client.get("/api/user/domain/verify", headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Domain is required"}


def test_instructions_for_query_domain(client, auth_headers):
    body = client.get("/api/user/domain/instructions", params={"domain": "cal.example.org"}, headers=auth_headers).json()

    assert body["records"][0]["name"] == "cal.example.org"
    assert body["records"][1]["value"].startswith("scheduler-verification=")
    assert len(body["instructions"]) == 6


def test_instructions_need_a_domain(client, auth_headers):
    response = client.get("/api/user/domain/instructions", headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Domain is required"}


def test_remove_domain(client, auth_headers):
    client.post("/api/user/domain", json={"domain": "book.example.com"}, headers=auth_headers)

    assert client.delete("/api/user/domain", headers=auth_headers).json() == {"success": True}
    assert client.get("/api/user/domain", headers=auth_headers).json()["domain"] is None
