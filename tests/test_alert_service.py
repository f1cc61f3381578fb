import asyncio
import json

import httpx

from app.services.alert_service import AlertService


def recording_transport(status_code=200, sent=None):
    def handler(request):
        if sent is not None:
            sent.append(request)
        return httpx.Response(status_code, json={"ok": status_code == 200})

    return httpx.MockTransport(handler)


class TestSendAlert:
    def test_returns_false_when_not_configured(self):
        result = asyncio.run(AlertService().send_alert("ERROR", "Test message"))
        assert result is False

    def test_sends_alert_to_telegram(self):
        sent = []
        alerts = AlertService("test-token", "test-chat", transport=recording_transport(sent=sent))

        result = asyncio.run(alerts.send_alert("ERROR", "Test error message"))

        assert result is True
        assert "api.telegram.org" in str(sent[0].url)
        json_data = json.loads(sent[0].content)
        assert json_data["chat_id"] == "test-chat"
        assert "ERROR" in json_data["text"]

    def test_includes_context_in_message(self):
        sent = []
        alerts = AlertService("test-token", "test-chat", transport=recording_transport(sent=sent))

        asyncio.run(alerts.send_alert("ERROR", "Test message", {"service": "easysystem-send-api"}))

        assert "easysystem-send-api" in json.loads(sent[0].content)["text"]

    def test_returns_false_on_telegram_error(self):
        alerts = AlertService("test-token", "test-chat", transport=recording_transport(400))

        assert asyncio.run(alerts.send_alert("ERROR", "Test message")) is False

    def test_returns_false_on_network_error(self):
        def handler(request):
            raise httpx.ConnectError("Network error")

        alerts = AlertService("test-token", "test-chat", transport=httpx.MockTransport(handler))

        assert asyncio.run(alerts.send_alert("ERROR", "Test message")) is False


class TestCircuitOpened:
    def test_alerts_with_service_name(self):
        sent = []
        alerts = AlertService("test-token", "test-chat", transport=recording_transport(sent=sent))

        asyncio.run(alerts.circuit_opened("easysystem-save-api", "timeout"))

        text = json.loads(sent[0].content)["text"]
        assert "Circuit opened: easysystem-save-api" in text
        assert "timeout" in text
