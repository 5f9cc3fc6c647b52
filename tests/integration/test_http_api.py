"""Integration tests for the HTTP surface.

Drives the Starlette app through httpx's ASGI transport: API-key check →
method dispatch → input extraction → checker → JSON body and cache headers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx
    from conftest import FakeProber


class TestAuthentication:
    async def test_missing_key_is_401(self, anon_client: httpx.AsyncClient) -> None:
        response = await anon_client.get("/", params={"url": "example.com"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_missing_key_wins_over_bad_method(self, anon_client: httpx.AsyncClient) -> None:
        response = await anon_client.put("/", json={"url": "example.com"})
        assert response.status_code == 401

    async def test_wrong_key_is_401(
        self, client: httpx.AsyncClient, fake_prober: FakeProber
    ) -> None:
        response = await client.get(
            "/", params={"url": "example.com"}, headers={"x-api-key": "nope"}
        )
        assert response.status_code == 401
        assert fake_prober.calls == []


class TestMethodDispatch:
    async def test_put_is_405(self, client: httpx.AsyncClient) -> None:
        response = await client.put("/", json={"url": "example.com"})
        assert response.status_code == 405
        assert response.headers["allow"] == "GET, POST"
        assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"

    async def test_delete_is_405(self, client: httpx.AsyncClient) -> None:
        response = await client.delete("/")
        assert response.status_code == 405
        assert response.headers["allow"] == "GET, POST"
        assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"

    async def test_patch_is_405_json_envelope(
        self, client: httpx.AsyncClient, fake_prober: FakeProber
    ) -> None:
        response = await client.patch("/", json={"url": "instagram.com"})
        assert response.status_code == 405
        assert response.headers["content-type"] == "application/json"
        assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"
        assert fake_prober.calls == []

    async def test_head_is_405(self, client: httpx.AsyncClient) -> None:
        response = await client.head("/", params={"url": "instagram.com"})
        assert response.status_code == 405
        assert response.headers["allow"] == "GET, POST"

    async def test_post_reaches_checker(
        self, client: httpx.AsyncClient, fake_prober: FakeProber
    ) -> None:
        fake_prober.status_codes["https://instagram.com/"] = 200
        response = await client.post("/", json={"url": "instagram.com"})
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {
            "requested_url": "https://instagram.com/",
            "results": [
                {
                    "type": "host",
                    "url": "https://instagram.com/",
                    "status": "UP",
                    "status_code": 200,
                    "status_text": "",
                }
            ],
        }
        assert fake_prober.probed_urls == ["https://instagram.com/"]

    async def test_unknown_path_is_404(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/status")
        assert response.status_code == 404


class TestBadRequests:
    async def test_get_without_url_is_400(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"

    async def test_get_with_blank_url_is_400(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/", params={"url": "  "})
        assert response.status_code == 400

    async def test_post_without_url_field_is_400(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/", json={"link": "example.com"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"

    async def test_post_invalid_json_is_400(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400

    async def test_post_json_array_is_400(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/", json=["example.com"])
        assert response.status_code == 400

    async def test_malformed_url_is_400_invalid_url(
        self, client: httpx.AsyncClient, fake_prober: FakeProber
    ) -> None:
        response = await client.post("/", json={"url": "ftp://example.com"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_URL"
        assert fake_prober.calls == []


class TestCheck:
    async def test_get_reachable_host(
        self, client: httpx.AsyncClient, fake_prober: FakeProber
    ) -> None:
        fake_prober.status_codes["https://instagram.com/"] = 200
        response = await client.get("/", params={"url": "instagram.com"})

        assert response.status_code == 200
        assert response.headers["x-worker-cache"] == "MISS"
        assert response.headers["cache-control"] == "max-age=600"
        assert response.json() == {
            "requested_url": "https://instagram.com/",
            "results": [
                {
                    "type": "host",
                    "url": "https://instagram.com/",
                    "status": "UP",
                    "status_code": 200,
                    "status_text": "",
                }
            ],
        }

    async def test_post_with_fallback(
        self, client: httpx.AsyncClient, fake_prober: FakeProber
    ) -> None:
        fake_prober.status_codes["https://sub.example.com/page"] = 500
        fake_prober.status_codes["https://example.com/"] = 301
        response = await client.post(
            "/", json={"url": "https://sub.example.com/page"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["requested_url"] == "https://sub.example.com/page"
        assert [(r["type"], r["status"], r["status_code"]) for r in body["results"]] == [
            ("host", "DOWN", 500),
            ("domain", "UP", 301),
        ]

    async def test_unreachable_target_is_200_with_down(self, client: httpx.AsyncClient) -> None:
        response = await client.get(
            "/", params={"url": "https://this-host-does-not-exist.invalid"}
        )
        assert response.status_code == 200
        (result,) = response.json()["results"]
        assert result["status"] == "DOWN"
        assert result["status_code"] == 0
        assert result["status_text"]

    async def test_second_request_is_cache_hit(
        self, client: httpx.AsyncClient, fake_prober: FakeProber
    ) -> None:
        fake_prober.status_codes["https://instagram.com/"] = 200
        first = await client.get("/", params={"url": "instagram.com"})
        second = await client.post("/", json={"url": "https://instagram.com/"})

        assert first.headers["x-worker-cache"] == "MISS"
        assert second.headers["x-worker-cache"] == "HIT"
        assert second.json() == first.json()
        assert len(fake_prober.calls) == 1
