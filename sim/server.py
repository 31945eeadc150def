import os
import threading
import uuid
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from flask import Flask, jsonify, request
from waitress import serve

# Network config
HOST = "0.0.0.0"
PORT = 8080

# Payments flip to success after this many status polls
PAYMENT_POLLS_UNTIL_SUCCESS = int(os.environ.get("SIM_PAYMENT_POLLS", "3"))


class DeviceApiSimulator:
    """Stateful stand-in for the remote device API.
    Commands are queued locally and handed out one per fetch; status reports
    and acks are recorded for inspection.
    """

    def __init__(self, api_key: str = ""):
        self._lock = threading.Lock()
        self.api_key = api_key
        self._next_id = 1
        self._queue: Deque[Dict[str, Any]] = deque()
        self._in_flight: Dict[int, Dict[str, Any]] = {}
        self.status_reports: List[str] = []
        self.acks: List[Dict[str, Any]] = []
        self.payments: Dict[str, int] = {}

    # --------- Helpers ---------
    def authorized(self, header: Optional[str]) -> bool:
        if not header or not header.startswith("Bearer "):
            return False
        return not self.api_key or header[len("Bearer "):] == self.api_key

    # --------- Command queue ---------
    def enqueue(self, command: str, duration_ms: Optional[int] = None, message: str = "") -> Dict[str, Any]:
        with self._lock:
            cmd: Dict[str, Any] = {"id": self._next_id, "command": command}
            if duration_ms is not None:
                cmd["duration_ms"] = duration_ms
            if message:
                cmd["message"] = message
            self._next_id += 1
            self._queue.append(cmd)
            return cmd

    def next_command(self) -> Dict[str, Any]:
        with self._lock:
            if not self._queue:
                return {"command": None}
            cmd = self._queue.popleft()
            self._in_flight[cmd["id"]] = cmd
            return cmd

    def ack(self, command_id: int, status: str, error_message: str) -> bool:
        with self._lock:
            cmd = self._in_flight.pop(command_id, None)
            if cmd is None:
                return False
            self.acks.append({"id": command_id, "status": status, "error_message": error_message})
            # failed commands go back to the queue, as the real server redelivers them
            if status != "success":
                self._queue.append(cmd)
            return True

    def report_status(self, payment_id: str) -> None:
        with self._lock:
            self.status_reports.append(payment_id)

    # --------- Payments ---------
    def create_payment(self, amount_cents: int, currency: str) -> Dict[str, Any]:
        payment_id = uuid.uuid4().hex[:12]
        with self._lock:
            self.payments[payment_id] = 0
        return {
            "id": payment_id,
            "status": "waiting",
            "amount_cents": amount_cents,
            "currency": currency,
            "valid_for_minutes": 5,
            "qr_code_url": f"https://example.com/qr/{payment_id}.png",
        }

    def payment_status(self, payment_id: str) -> Optional[str]:
        with self._lock:
            if payment_id not in self.payments:
                return None
            self.payments[payment_id] += 1
            polls = self.payments[payment_id]
        return "success" if polls >= PAYMENT_POLLS_UNTIL_SUCCESS else "waiting"

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "queued": list(self._queue),
                "in_flight": list(self._in_flight.values()),
                "status_reports": list(self.status_reports[-20:]),
                "acks": list(self.acks[-20:]),
            }


def create_sim_app(sim: DeviceApiSimulator) -> Flask:
    app = Flask(__name__)

    @app.before_request
    def _check_auth():
        if request.path.startswith("/api/") and not sim.authorized(request.headers.get("Authorization")):
            return jsonify({"error": "unauthorized"}), 401
        return None

    @app.post("/api/v1/device/status")
    def device_status():
        data = request.get_json(silent=True) or {}
        sim.report_status(data.get("payment_id", ""))
        return jsonify({"success": True})

    @app.get("/api/v1/device/commands")
    def device_commands():
        return jsonify(sim.next_command())

    @app.post("/api/v1/device/commands/<int:command_id>/ack")
    def device_ack(command_id):
        data = request.get_json(silent=True) or {}
        if not sim.ack(command_id, data.get("status", ""), data.get("error_message", "")):
            return jsonify({"success": False}), 404
        return jsonify({"success": True})

    @app.post("/api/v1/payment")
    def payment_create():
        data = request.get_json(silent=True) or {}
        return jsonify(sim.create_payment(data.get("amount_cents", 0), data.get("currency", "CHF"))), 201

    @app.get("/api/v1/payment/<payment_id>")
    def payment_get(payment_id):
        status = sim.payment_status(payment_id)
        if status is None:
            return jsonify({"error": "payment not found"}), 404
        return jsonify({"id": payment_id, "status": status})

    # --------- Simulator control ---------
    @app.post("/sim/commands")
    def sim_enqueue():
        data = request.get_json(silent=True) or {}
        if not data.get("command"):
            return jsonify({"error": "command is required"}), 400
        cmd = sim.enqueue(data["command"], data.get("duration_ms"), data.get("message", ""))
        return jsonify(cmd), 201

    @app.get("/sim/state")
    def sim_state():
        return jsonify(sim.snapshot())

    return app


def start_server(host: str = HOST, port: int = PORT, api_key: str = ""):
    sim = DeviceApiSimulator(api_key=api_key)
    print(f"[SIMULATOR] Listening on {host}:{port} | payment success after "
          f"{PAYMENT_POLLS_UNTIL_SUCCESS} polls")
    serve(create_sim_app(sim), host=host, port=port, threads=4)
