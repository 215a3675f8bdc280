from __future__ import annotations

import asyncio

import httpx
import pytest

from tests.helpers.provider_stubs import json_response
from tradewizard.config import ProviderConfig
from tradewizard.providers import (
    AuthError,
    ClientError,
    MalformedResponseError,
    ProviderClient,
    ProviderUnavailable,
    ServerError,
    TransportError,
    backoff_delay,
)
from tradewizard.providers.models import HSSearchResponse


def test_backoff_delay_is_capped_exponential():
    assert [backoff_delay(n, 1.0, 30.0) for n in range(6)] == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0]
    assert backoff_delay(3, 0.5, 2.0) == 2.0


def test_successful_request_decodes_json_and_sends_auth(make_client):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return json_response({"results": []})

    client = make_client(handler, auth_scheme="header", header_name="Subscription-Key")
    body = asyncio.run(client.request("GET", "/nomenclature/search", params={"query": "wine"}))

    assert body == {"results": []}
    assert seen[0].url.path == "/v1/nomenclature/search"
    assert seen[0].url.params["query"] == "wine"
    assert seen[0].headers["Subscription-Key"] == "secret-key"
    assert "Authorization" not in seen[0].headers


def test_retries_server_errors_with_backoff(make_client, sleep_recorder):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            return json_response({"message": "unavailable"}, status_code=503)
        return json_response({"ok": True})

    client = make_client(handler, backoff_base=1.0, backoff_cap=30.0)
    assert asyncio.run(client.request("GET", "/status")) == {"ok": True}
    assert len(attempts) == 3
    assert sleep_recorder.delays == [1.0, 2.0]


def test_gives_up_after_max_retries(make_client, sleep_recorder):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return json_response({"message": "boom"}, status_code=500)

    client = make_client(handler, max_retries=3)
    with pytest.raises(ServerError) as excinfo:
        asyncio.run(client.request("GET", "/status"))
    assert excinfo.value.status == 500
    assert excinfo.value.message == "boom"
    assert len(attempts) == 4
    assert sleep_recorder.delays == [1.0, 2.0, 4.0]


def test_timeouts_surface_as_transport_errors(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(handler, max_retries=1)
    with pytest.raises(TransportError):
        asyncio.run(client.request("GET", "/slow"))


def test_non_idempotent_requests_are_not_retried(make_client):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return json_response({"message": "boom"}, status_code=502)

    client = make_client(handler)
    with pytest.raises(ServerError):
        asyncio.run(client.request("POST", "/submit", json={}, idempotent=False))
    assert len(attempts) == 1


def test_client_errors_are_not_retried(make_client):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return json_response({"error": {"message": "bad query"}}, status_code=400)

    client = make_client(handler)
    with pytest.raises(ClientError) as excinfo:
        asyncio.run(client.request("GET", "/nomenclature/search"))
    assert excinfo.value.message == "bad query"
    assert len(attempts) == 1


def test_unauthorized_switches_auth_scheme_once_and_keeps_it(make_client):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if "Authorization" in request.headers:
            return json_response({"ok": True})
        return json_response({"message": "bad key"}, status_code=401)

    client = make_client(handler, auth_scheme="header", header_name="OpenAI-Project-Key", alternate_auth=True)

    async def scenario():
        first = await client.request("POST", "/chat/completions", json={})
        second = await client.request("POST", "/chat/completions", json={})
        return first, second

    assert asyncio.run(scenario()) == ({"ok": True}, {"ok": True})
    assert seen[0].headers["OpenAI-Project-Key"] == "secret-key"
    assert seen[1].headers["Authorization"] == "Bearer secret-key"
    assert len(seen) == 3
    assert client.auth_scheme == "bearer"


def test_unauthorized_without_alternate_auth_raises(make_client):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return json_response({"message": "nope"}, status_code=401)

    client = make_client(handler)
    with pytest.raises(AuthError):
        asyncio.run(client.request("GET", "/secure"))
    assert len(attempts) == 1


def test_alternate_auth_retry_happens_only_once(make_client):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return json_response({"message": "nope"}, status_code=401)

    client = make_client(handler, alternate_auth=True)
    with pytest.raises(AuthError):
        asyncio.run(client.request("GET", "/secure"))
    assert len(attempts) == 2


def test_forbidden_is_not_retried_with_alternate_auth(make_client):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return json_response({"message": "forbidden"}, status_code=403)

    client = make_client(handler, alternate_auth=True)
    with pytest.raises(AuthError) as excinfo:
        asyncio.run(client.request("GET", "/secure"))
    assert excinfo.value.status == 403
    assert len(attempts) == 1


def test_missing_credential_never_calls_provider(make_client):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return json_response({})

    client = make_client(handler, api_key=None)
    with pytest.raises(ProviderUnavailable):
        asyncio.run(client.request("GET", "/anything"))
    assert attempts == []


def test_invalid_json_and_schema_are_malformed(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/text"):
            return httpx.Response(200, content=b"<html>oops</html>")
        return json_response({"results": [{"hsCode": "851712"}]})

    client = make_client(handler)
    with pytest.raises(MalformedResponseError):
        asyncio.run(client.request("GET", "/text"))
    with pytest.raises(MalformedResponseError):
        asyncio.run(client.request_model("GET", "/nomenclature/search", HSSearchResponse))


def test_owned_http_client_is_closed():
    client = ProviderClient(ProviderConfig(name="solo", base_url="https://provider.test", api_key="k"))

    async def scenario():
        async with client:
            pass

    asyncio.run(scenario())
    assert client._http.is_closed
