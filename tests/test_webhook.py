"""Tests for the httpx-backed webhook gateway."""

import json

import httpx
import pytest

from automation_kernel.gateways.webhook import HttpWebhookGateway


def _make_gateway(handler) -> HttpWebhookGateway:
    return HttpWebhookGateway(client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestHttpWebhookGateway:
    def test_json_body_delivered(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("X-Token")
            return httpx.Response(202)

        gateway = _make_gateway(handler)
        result = gateway.post(
            "https://hooks.example.com/erp", "post", {"X-Token": "abc"}, {"quoteId": "q_1"}, 5.0
        )

        assert result.ok
        assert result.data == {"status_code": 202}
        assert seen == {"method": "POST", "body": {"quoteId": "q_1"}, "auth": "abc"}

    def test_text_body(self):
        def handler(request):
            assert request.content == b"ping"
            return httpx.Response(200)

        assert _make_gateway(handler).post("https://x.example.com", "PUT", {}, "ping", 5.0).ok

    @pytest.mark.parametrize("status,retryable", [(503, True), (429, True), (400, False), (404, False)])
    def test_error_status(self, status, retryable):
        gateway = _make_gateway(lambda request: httpx.Response(status))
        result = gateway.post("https://x.example.com", "POST", {}, {}, 5.0)
        assert not result.ok
        assert result.retryable is retryable
        assert str(status) in result.error

    def test_transport_error_is_retryable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = _make_gateway(handler).post("https://x.example.com", "POST", {}, {}, 5.0)
        assert not result.ok
        assert result.retryable

    def test_timeout_is_retryable(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        result = _make_gateway(handler).post("https://x.example.com", "POST", {}, {}, 0.1)
        assert result.retryable
        assert "timed out" in result.error
