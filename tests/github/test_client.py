"""Tests for gitflux.github.client: status mapping and headers."""

import httpx
import pytest

from gitflux.config import FetchConfig
from gitflux.exceptions import (
    HTTPStatusError,
    NotFoundError,
    RateLimitError,
    TransientNetworkError,
)
from gitflux.github.client import GitHubClient
from gitflux.github.models import RepoRef


def _client(handler, credential="secret"):
    return GitHubClient(credential, FetchConfig(), transport=httpx.MockTransport(handler))


class TestRequests:
    def test_bearer_token_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        _client(handler).get("/repos/a/b/commits")
        assert seen[0].headers["authorization"] == "Bearer secret"
        assert seen[0].headers["accept"] == "application/vnd.github+json"

    def test_unauthenticated_has_no_auth_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        _client(handler, credential=None).get("/x")
        assert "authorization" not in seen[0].headers

    def test_params_are_forwarded(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        _client(handler).get("/repos/a/b/commits", params={"page": 2, "per_page": 50})
        assert seen[0].url.params["page"] == "2"
        assert seen[0].url.params["per_page"] == "50"

    def test_rate_envelope_is_attached(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"ok": True},
                headers={"x-ratelimit-remaining": "41", "x-ratelimit-limit": "60"},
            )

        client = _client(handler)
        response = client.get("/x")
        assert response.data == {"ok": True}
        assert response.rate.remaining == 41
        assert client.last_rate is response.rate


class TestStatusMapping:
    def test_404(self):
        with pytest.raises(NotFoundError) as excinfo:
            _client(lambda r: httpx.Response(404, json={"message": "Not Found"})).get("/repos/a/b")
        assert excinfo.value.status == 404

    def test_429(self):
        def handler(request):
            return httpx.Response(429, headers={"retry-after": "30"})

        with pytest.raises(RateLimitError) as excinfo:
            _client(handler).get("/x")
        assert excinfo.value.reset_at is not None

    def test_403_with_exhausted_quota(self):
        def handler(request):
            return httpx.Response(
                403,
                json={"message": "Forbidden"},
                headers={
                    "x-ratelimit-remaining": "0",
                    "x-ratelimit-limit": "60",
                    "x-ratelimit-reset": "1700000000",
                },
            )

        with pytest.raises(RateLimitError) as excinfo:
            _client(handler).get("/x")
        assert excinfo.value.reset_at.timestamp() == 1700000000

    def test_403_with_rate_limit_message(self):
        def handler(request):
            return httpx.Response(403, json={"message": "API rate limit exceeded for 1.2.3.4"})

        with pytest.raises(RateLimitError):
            _client(handler).get("/x")

    def test_plain_403_is_not_rate_limit(self):
        def handler(request):
            return httpx.Response(403, json={"message": "Resource not accessible by integration"})

        with pytest.raises(HTTPStatusError) as excinfo:
            _client(handler).get("/x")
        assert excinfo.value.status == 403
        assert "not accessible" in str(excinfo.value)

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors_are_transient(self, status):
        with pytest.raises(TransientNetworkError) as excinfo:
            _client(lambda r: httpx.Response(status)).get("/x")
        assert excinfo.value.status == status

    def test_401_is_fatal_status_error(self):
        with pytest.raises(HTTPStatusError) as excinfo:
            _client(lambda r: httpx.Response(401, json={"message": "Bad credentials"})).get("/x")
        assert "Bad credentials" in str(excinfo.value)

    def test_timeout_is_transient(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransientNetworkError, match="timed out"):
            _client(handler).get("/x")

    def test_connection_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransientNetworkError):
            _client(handler).get("/x")

    def test_malformed_json(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>")

        with pytest.raises(HTTPStatusError, match="Malformed JSON"):
            _client(handler).get("/x")


class TestGetRepository:
    def test_maps_metadata(self, payloads):
        def handler(request):
            assert request.url.path == "/repos/octo/repo"
            return httpx.Response(200, json=payloads.repository(default_branch="trunk"))

        info = _client(handler).get_repository(RepoRef("octo", "repo"))
        assert info.full_name == "octo/repo"
        assert info.default_branch == "trunk"
        assert info.visibility == "public"
        assert info.stars == 3

    def test_unexpected_payload(self):
        with pytest.raises(HTTPStatusError):
            _client(lambda r: httpx.Response(200, json={"id": 1})).get_repository(RepoRef("octo", "repo"))
