import asyncio
import json
from unittest.mock import AsyncMock, Mock

import httpx

from app.services.backend_client import BackendClient
from app.services.circuit_breaker import SEND_SERVICE
from app.services.http_client import DirectHttpClient, HttpResponse
from app.services.profiles import QUILL_SBA
from conftest import make_turn

URL = "http://easysystem.test/send"


def json_response(data, status_code=200):
    return HttpResponse(status_code, json.dumps(data).encode())


def make_client(http=None, allow=True):
    breaker = Mock()
    breaker.can_execute = AsyncMock(return_value=allow)
    breaker.record_success = AsyncMock()
    breaker.record_failure = AsyncMock()
    http = http or Mock()
    return BackendClient(http, breaker, Mock()), breaker


class TestBackendCall:
    def test_success_parses_response(self):
        http = Mock()
        http.post = AsyncMock(return_value=json_response({"text": "Hi", "transfer": False, "contentType": "text/plain"}))
        client, breaker = make_client(http)

        result = asyncio.run(client.call(SEND_SERVICE, URL, {"text": "x"}, make_turn(), QUILL_SBA))

        assert result.ok is True
        assert result.value.text == "Hi"
        assert result.value.content_type == "text/plain"
        breaker.record_success.assert_awaited_once()
        breaker.record_failure.assert_not_awaited()

    def test_sends_headers_and_timeout(self):
        http = Mock()
        http.post = AsyncMock(return_value=json_response({"text": "Hi"}))
        client, _ = make_client(http)

        asyncio.run(client.call(SEND_SERVICE, URL, {"text": "x"}, make_turn(business_unit="Q"), QUILL_SBA))

        kwargs = http.post.call_args.kwargs
        assert kwargs["headers"]["business-unit"] == "Q"
        assert kwargs["headers"]["isLoggedIn"] == "false"
        assert kwargs["timeout"] == 30.0

    def test_open_circuit_skips_http(self):
        http = Mock()
        http.post = AsyncMock()
        client, breaker = make_client(http, allow=False)

        result = asyncio.run(client.call(SEND_SERVICE, URL, {}, make_turn(), QUILL_SBA))

        assert result.ok is False
        assert result.error_code == "circuit_open"
        http.post.assert_not_awaited()
        breaker.record_failure.assert_not_awaited()

    def test_http_error_records_failure(self):
        http = DirectHttpClient(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        client, breaker = make_client(http)

        result = asyncio.run(client.call(SEND_SERVICE, URL, {}, make_turn(), QUILL_SBA))

        assert result.error_code == "remote_call_failure"
        breaker.record_failure.assert_awaited_once()
        assert breaker.record_failure.call_args[0][0] == SEND_SERVICE

    def test_malformed_response_is_a_failure(self):
        http = Mock()
        http.post = AsyncMock(return_value=json_response(["not", "an", "object"]))
        client, breaker = make_client(http)

        result = asyncio.run(client.call(SEND_SERVICE, URL, {}, make_turn(), QUILL_SBA))

        assert result.error_code == "remote_call_failure"
        breaker.record_failure.assert_awaited_once()
        breaker.record_success.assert_not_awaited()

    def test_post_returns_raw_data(self):
        http = Mock()
        http.post = AsyncMock(return_value=json_response({"saved": True}))
        client, _ = make_client(http)

        result = asyncio.run(
            client.post("svc", URL, {}, make_turn(), QUILL_SBA, include_session_headers=False, extra_headers={"X-A": "1"})
        )

        assert result.value.status_code == 200
        headers = http.post.call_args.kwargs["headers"]
        assert headers["X-A"] == "1"
        assert "isLoggedIn" not in headers

    def test_post_accepts_non_json_success_body(self):
        http = DirectHttpClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"Saved")))
        client, breaker = make_client(http)

        result = asyncio.run(client.post("svc", URL, {}, make_turn(), QUILL_SBA, include_session_headers=False))

        assert result.ok is True
        breaker.record_success.assert_awaited_once()
        breaker.record_failure.assert_not_awaited()

    def test_call_rejects_non_json_body(self):
        http = DirectHttpClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"Saved")))
        client, breaker = make_client(http)

        result = asyncio.run(client.call(SEND_SERVICE, URL, {}, make_turn(), QUILL_SBA))

        assert result.error_code == "remote_call_failure"
        breaker.record_failure.assert_awaited_once()
