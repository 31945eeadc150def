from flask import Blueprint, Response, current_app, jsonify, render_template, request

from dispenser.device_client import PAYMENT_PATH, DeviceApiError
from dispenser.runtime import DispenserRuntime
from system.config import KEY_DEFAULT_AMOUNT, KEY_SUCCESS_OVERLAY_MS
from system.errors import ActuatorError
from system.log_utils import debug, error, warn

dispenser_bp = Blueprint("dispenser", __name__, template_folder="templates")

DEFAULT_CURRENCY = "CHF"
DEFAULT_REDIRECT_URL = "https://example.com/payments/123/complete"
DISPENSE_FAILED_MESSAGE = "Solibändeli konnte nicht ausgegeben werden"


def _runtime() -> DispenserRuntime:
    return current_app.extensions["dispenser"]


def _forward(resp) -> Response:
    return Response(resp.content, status=resp.status_code, mimetype="application/json")


# ----------------------------------------------------------------------
# Kiosk page
# ----------------------------------------------------------------------
@dispenser_bp.route("/")
def index():
    cfg = _runtime().config
    return render_template(
        "index.html",
        default_amount=cfg.get_int(KEY_DEFAULT_AMOUNT),
        success_overlay_ms=cfg.get_int(KEY_SUCCESS_OVERLAY_MS),
    )


# ----------------------------------------------------------------------
# Payment proxy
# ----------------------------------------------------------------------
@dispenser_bp.route("/api/payment", methods=["POST"])
def create_payment():
    runtime = _runtime()
    data = request.get_json(silent=True) or {}

    payload = {
        "amount_cents": data.get("amount_cents") or runtime.config.get_int(KEY_DEFAULT_AMOUNT),
        "currency": data.get("currency") or DEFAULT_CURRENCY,
        "payment_redirect_url": data.get("payment_redirect_url") or DEFAULT_REDIRECT_URL,
    }

    try:
        resp = runtime.api_client.request("POST", PAYMENT_PATH, payload)
    except DeviceApiError as e:
        warn(f"[HTTP] payment creation failed: {e}")
        return jsonify({"error": "failed to reach payment service"}), 502

    if resp.ok:
        try:
            body = resp.json()
        except ValueError:
            body = None
        payment_id = body.get("id") if isinstance(body, dict) else None
        if payment_id:
            runtime.poller.set_payment_id(str(payment_id))
            debug(f"[HTTP] tracking payment {payment_id}")

    return _forward(resp)


@dispenser_bp.route("/api/payment/<payment_id>", methods=["GET"])
def get_payment_status(payment_id):
    try:
        resp = _runtime().api_client.request("GET", f"{PAYMENT_PATH}/{payment_id}")
    except DeviceApiError as e:
        warn(f"[HTTP] payment status failed: {e}")
        return jsonify({"error": "failed to reach payment service"}), 502
    return _forward(resp)


# ----------------------------------------------------------------------
# Actuator
# ----------------------------------------------------------------------
@dispenser_bp.route("/api/actuate", methods=["POST"])
def actuate():
    try:
        total_ms = _runtime().trigger()
    except ActuatorError as e:
        error(f"[HTTP] actuator error: {e}")
        return jsonify({
            "status": "error",
            "error": DISPENSE_FAILED_MESSAGE,
            "total_time_ms": 0,
        }), 500

    return jsonify({"status": "ok", "total_time_ms": total_ms}), 200


@dispenser_bp.route("/api/device/status", methods=["GET"])
def device_status():
    return jsonify(_runtime().status()), 200
