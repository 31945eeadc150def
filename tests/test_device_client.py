from unittest.mock import MagicMock

import pytest
import requests

from dispenser.command import AckResult, CommandKind
from dispenser.device_client import (
    ACK_PATH,
    COMMANDS_PATH,
    HTTP_TIMEOUT_SEC,
    STATUS_PATH,
    DeviceApiClient,
    DeviceApiError,
)


def _response(status=200, body=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture()
def session():
    return MagicMock()


@pytest.fixture()
def client(session):
    return DeviceApiClient("http://api.test/", "secret", session=session)


class TestRequests:
    def test_report_status_sends_payment_id(self, client, session):
        session.request.return_value = _response(body={"success": True})

        assert client.report_status("pay-1") is True

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "POST"
        assert url == "http://api.test" + STATUS_PATH
        assert kwargs["json"] == {"payment_id": "pay-1"}
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["timeout"] == HTTP_TIMEOUT_SEC

    def test_fetch_sends_no_body(self, client, session):
        session.request.return_value = _response(body={"id": 42, "command": "extend", "duration_ms": 500})

        cmd = client.fetch_command()

        assert cmd.id == 42
        assert cmd.kind == CommandKind.EXTEND
        method, url = session.request.call_args.args
        assert (method, url) == ("GET", "http://api.test" + COMMANDS_PATH)
        assert session.request.call_args.kwargs["json"] is None
        assert "Content-Type" not in session.request.call_args.kwargs["headers"]

    def test_fetch_null_command(self, client, session):
        session.request.return_value = _response(body={"command": None})
        assert client.fetch_command() is None

    def test_acknowledge_posts_result(self, client, session):
        session.request.return_value = _response(body={"success": True})

        client.acknowledge(47, AckResult.failed("unknown command: ball_dispenser"))

        method, url = session.request.call_args.args
        assert url == "http://api.test" + ACK_PATH.format(id=47)
        assert session.request.call_args.kwargs["json"] == {
            "status": "failed",
            "error_message": "unknown command: ball_dispenser",
        }


class TestErrors:
    def test_unauthorized(self, client, session):
        session.request.return_value = _response(status=401)
        with pytest.raises(DeviceApiError, match="unauthorized"):
            client.fetch_command()

    def test_unexpected_status(self, client, session):
        session.request.return_value = _response(status=500, text="boom")
        with pytest.raises(DeviceApiError, match="unexpected status code 500"):
            client.report_status("")

    def test_success_false(self, client, session):
        session.request.return_value = _response(body={"success": False})
        with pytest.raises(DeviceApiError, match="success=false"):
            client.report_status("")

    def test_ack_not_found(self, client, session):
        session.request.return_value = _response(status=404)
        with pytest.raises(DeviceApiError, match="command not found"):
            client.acknowledge(1, AckResult.success())

    def test_undecodable_body(self, client, session):
        session.request.return_value = _response(body=ValueError("not json"))
        with pytest.raises(DeviceApiError, match="decode"):
            client.fetch_command()

    def test_transport_failure_wrapped(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(DeviceApiError, match="request failed"):
            client.fetch_command()
