from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from dispenser.command import AckResult, Command
from system.log_utils import debug, info

HTTP_TIMEOUT_SEC = 15

STATUS_PATH = "/api/v1/device/status"
COMMANDS_PATH = "/api/v1/device/commands"
ACK_PATH = "/api/v1/device/commands/{id}/ack"
PAYMENT_PATH = "/api/v1/payment"


class DeviceApiError(Exception):
    """Remote device API unreachable or returned an unexpected answer."""


class DeviceApiClient:
    """
    Thin client for the remote Baendaeli device API.
    Every call raises DeviceApiError on transport, HTTP or payload failure.
    """

    def __init__(self, base_url: str, api_key: str, *,
                 session: Optional[requests.Session] = None,
                 timeout: float = HTTP_TIMEOUT_SEC):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def request(self, method: str, path: str, payload: Optional[dict] = None) -> requests.Response:
        """Raw authorized request; used as-is by the payment proxy."""
        try:
            return self.session.request(
                method,
                self.build_url(path),
                json=payload,
                headers=self._headers(json_body=payload is not None),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DeviceApiError(f"request failed: {e}") from e

    def _call(self, method: str, path: str, payload: Optional[dict] = None,
              not_found: Optional[str] = None) -> Dict[str, Any]:
        resp = self.request(method, path, payload)

        if resp.status_code == 401:
            raise DeviceApiError("unauthorized: invalid or missing API key")
        if resp.status_code == 404 and not_found:
            raise DeviceApiError(not_found)
        if resp.status_code != 200:
            raise DeviceApiError(f"unexpected status code {resp.status_code}: {resp.text}")

        try:
            data = resp.json()
        except ValueError as e:
            raise DeviceApiError(f"failed to decode response: {e}") from e
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------
    # Device endpoints
    # ------------------------------------------------------------------

    def report_status(self, payment_id: str) -> bool:
        data = self._call("POST", STATUS_PATH, {"payment_id": payment_id})
        if not data.get("success"):
            raise DeviceApiError("server returned success=false")
        debug(f"[DEVICE API] status reported (payment_id={payment_id or '-'})")
        return True

    def fetch_command(self) -> Optional[Command]:
        data = self._call("GET", COMMANDS_PATH)
        try:
            return Command.from_payload(data)
        except (TypeError, ValueError) as e:
            raise DeviceApiError(f"malformed command payload: {e}") from e

    def acknowledge(self, command_id: int, result: AckResult) -> bool:
        data = self._call(
            "POST",
            ACK_PATH.format(id=command_id),
            result.to_dict(),
            not_found="command not found or belongs to different device",
        )
        if not data.get("success"):
            raise DeviceApiError("server returned success=false")
        info(f"[DEVICE API] acknowledged command {command_id} ({result.status})")
        return True
