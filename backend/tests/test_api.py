"""Tests for HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient

from shortlink.config import settings
from shortlink.main import error_response


def create(client, headers, **body):
    body.setdefault("originalUrl", "example.com")
    return client.post("/api/links", json=body, headers=headers)


class TestCreateEndpoint:

    def test_create_link(self, client, auth_headers):
        response = create(client, auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        link = body["data"]["link"]
        assert link["originalUrl"] == "https://example.com"
        assert link["shortUrl"] == f"{settings.BASE_URL}/r/{link['shortCode']}"
        assert link["title"] == "Untitled Link"
        assert link["clicks"] == 0
        assert "clickEvents" not in link

    def test_requires_auth(self, client):
        response = client.post("/api/links", json={"originalUrl": "example.com"})

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_missing_url(self, client, auth_headers):
        response = client.post("/api/links", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    def test_invalid_url(self, client, auth_headers):
        response = create(client, auth_headers, originalUrl="not a url")
        assert response.status_code == 400

    def test_invalid_slug_pattern(self, client, auth_headers):
        response = create(client, auth_headers, customSlug="bad slug!")
        assert response.status_code == 400

    def test_duplicate_slug(self, client, auth_headers, other_headers):
        assert create(client, auth_headers, customSlug="my-link").status_code == 201

        response = create(client, other_headers, customSlug="my-link")

        assert response.status_code == 409
        assert response.json() == {"success": False, "message": "Custom slug is already taken"}

    def test_code_space_exhausted(self, client, auth_headers, monkeypatch):
        monkeypatch.setattr("shortlink.services.allocator.generate_short_code", lambda length: "fixedcode1")
        assert create(client, auth_headers).status_code == 201

        response = create(client, auth_headers)

        assert response.status_code == 503
        assert response.json()["success"] is False
        assert "error" not in response.json()


class TestEndToEnd:

    def test_slug_redirect_and_analytics(self, client, auth_headers):
        created = create(client, auth_headers, customSlug="my-link")
        link = created.json()["data"]["link"]
        assert link["shortUrl"] == f"{settings.BASE_URL}/r/my-link"

        response = client.get(
            "/r/my-link",
            headers={"User-Agent": "e2e-agent", "Referer": "https://ref.example", "CF-IPCountry": "DE"},
            follow_redirects=False,
        )
        assert response.status_code == 301
        assert response.headers["location"] == "https://example.com"
        assert "no-cache" in response.headers["cache-control"]

        analytics = client.get(f"/api/links/{link['id']}/analytics", headers=auth_headers)
        assert analytics.status_code == 200
        data = analytics.json()["data"]["link"]
        assert data["clicks"] == 1
        assert data["analytics"]["totalClicks"] == 1
        assert data["analytics"]["clicksToday"] == 1
        assert data["analytics"]["clicksThisWeek"] == 1
        [event] = data["analytics"]["clickEvents"]
        assert event["userAgent"] == "e2e-agent"
        assert event["referer"] == "https://ref.example"
        assert event["country"] == "DE"
        assert event["city"] == ""

    def test_redirect_by_generated_code(self, client, auth_headers):
        code = create(client, auth_headers).json()["data"]["link"]["shortCode"]

        response = client.get(f"/r/{code}", follow_redirects=False)

        assert response.status_code == 301

    def test_redirect_unknown_code(self, client):
        response = client.get("/r/does-not-exist", follow_redirects=False)

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Link not found or has expired"}

    def test_deactivated_link_stops_redirecting(self, client, auth_headers):
        link = create(client, auth_headers, customSlug="soon-off").json()["data"]["link"]

        response = client.patch(f"/api/links/{link['id']}", json={"isActive": False}, headers=auth_headers)
        assert response.status_code == 200

        assert client.get("/r/soon-off", follow_redirects=False).status_code == 404

    def test_expired_link_not_found(self, client, auth_headers):
        create(client, auth_headers, customSlug="old-link", expiresAt="2020-01-01T00:00:00Z")
        assert client.get("/r/old-link", follow_redirects=False).status_code == 404


class TestOwnerScopedEndpoints:

    def test_analytics_of_other_users_link(self, client, auth_headers, other_headers):
        link_id = create(client, auth_headers).json()["data"]["link"]["id"]

        response = client.get(f"/api/links/{link_id}/analytics", headers=other_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Link not found"

    def test_simulated_click(self, client, auth_headers):
        link_id = create(client, auth_headers).json()["data"]["link"]["id"]

        response = client.post(
            f"/api/links/{link_id}/click",
            json={"ipAddress": "192.0.2.44", "userAgent": "simulator"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["link"]["clicks"] == 1

    def test_simulated_click_without_body(self, client, auth_headers):
        link_id = create(client, auth_headers).json()["data"]["link"]["id"]

        response = client.post(f"/api/links/{link_id}/click", headers=auth_headers)

        assert response.status_code == 200

    def test_simulated_click_on_other_users_link(self, client, auth_headers, other_headers):
        link_id = create(client, auth_headers).json()["data"]["link"]["id"]

        response = client.post(f"/api/links/{link_id}/click", headers=other_headers)

        assert response.status_code == 404

    def test_get_and_list(self, client, auth_headers, other_headers):
        first = create(client, auth_headers, title="Docs", originalUrl="docs.example.com").json()["data"]["link"]
        create(client, auth_headers, title="Blog")
        create(client, other_headers, title="Docs elsewhere")

        assert client.get(f"/api/links/{first['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"/api/links/{first['id']}", headers=other_headers).status_code == 404

        listing = client.get("/api/links", headers=auth_headers).json()["data"]
        assert listing["pagination"]["totalCount"] == 2
        assert [link["title"] for link in listing["links"]] == ["Blog", "Docs"]

        searched = client.get("/api/links", params={"search": "docs"}, headers=auth_headers).json()["data"]
        assert [link["id"] for link in searched["links"]] == [first["id"]]

        paged = client.get(
            "/api/links", params={"limit": 1, "page": 2, "sortBy": "title", "sortOrder": "asc"},
            headers=auth_headers,
        ).json()["data"]
        assert [link["title"] for link in paged["links"]] == ["Docs"]
        assert paged["pagination"]["total"] == 2

    def test_search_wildcards_match_literally(self, client, auth_headers):
        snake = create(client, auth_headers, customSlug="snake_case", title="Snake").json()["data"]["link"]
        sale = create(client, auth_headers, customSlug="plain-slug", title="50% off").json()["data"]["link"]

        def search(text):
            data = client.get("/api/links", params={"search": text}, headers=auth_headers).json()["data"]
            return [link["id"] for link in data["links"]]

        assert search("_") == [snake["id"]]
        assert search("%") == [sale["id"]]
        assert search("\\") == []

    def test_update(self, client, auth_headers):
        link = create(client, auth_headers).json()["data"]["link"]

        response = client.patch(
            f"/api/links/{link['id']}",
            json={"title": "  Renamed ", "tags": ["x", "x", " y "], "customSlug": "renamed"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        updated = response.json()["data"]["link"]
        assert updated["title"] == "Renamed"
        assert updated["tags"] == ["x", "y"]
        assert updated["shortUrl"].endswith("/r/renamed")
        assert client.get("/r/renamed", follow_redirects=False).status_code == 301

    def test_update_slug_conflict(self, client, auth_headers):
        taken = create(client, auth_headers).json()["data"]["link"]
        link = create(client, auth_headers).json()["data"]["link"]

        response = client.patch(
            f"/api/links/{link['id']}", json={"customSlug": taken["shortCode"]}, headers=auth_headers
        )

        assert response.status_code == 409

    def test_delete_frees_slug(self, client, auth_headers):
        link = create(client, auth_headers, customSlug="reusable").json()["data"]["link"]

        assert client.delete(f"/api/links/{link['id']}", headers=auth_headers).status_code == 200
        assert client.delete(f"/api/links/{link['id']}", headers=auth_headers).status_code == 404
        assert client.get("/r/reusable", follow_redirects=False).status_code == 404
        assert create(client, auth_headers, customSlug="reusable").status_code == 201

    def test_summary(self, client, auth_headers):
        link = create(client, auth_headers, customSlug="counted").json()["data"]["link"]
        create(client, auth_headers, expiresAt="2020-01-01T00:00:00Z")
        client.get("/r/counted", follow_redirects=False)
        client.post(f"/api/links/{link['id']}/click", headers=auth_headers)

        summary = client.get("/api/links/summary", headers=auth_headers).json()["data"]["summary"]

        assert summary == {"totalLinks": 2, "totalClicks": 2, "activeLinks": 1}


class TestServiceEndpoints:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] is True

    def test_error_detail_only_in_debug(self, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG", False)
        assert b"error" not in error_response(500, "boom", detail="secret").body

        monkeypatch.setattr(settings, "DEBUG", True)
        assert b'"error":"secret"' in error_response(500, "boom", detail="secret").body

    @pytest.mark.parametrize("debug", [False, True])
    def test_unexpected_error_uses_failure_body(self, app, monkeypatch, debug):
        monkeypatch.setattr(settings, "DEBUG", debug)

        def broken():
            raise RuntimeError("disk on fire")

        app.add_api_route("/broken", broken)

        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.get("/broken")

        assert response.status_code == 500
        expected = {"success": False, "message": "Internal server error"}
        if debug:
            expected["error"] = "disk on fire"
        assert response.json() == expected
