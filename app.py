import logging
import socket
import sys
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request

from app_config import AppConfig
from services.analytics import get_analytics_engine
from services.swiggy_client import SwiggyClient, SwiggyError

# --- App Initialization ---
CONFIG = AppConfig.from_env()

app = Flask(__name__)
app.json.sort_keys = False


def _build_client() -> SwiggyClient:
    return SwiggyClient(CONFIG)


def _error_response(exc: SwiggyError) -> Tuple[Any, int]:
    return jsonify({"error": str(exc), "code": exc.code}), exc.status_code


def _request_payload() -> Dict[str, Any]:
    payload = request.get_json(force=True, silent=True)
    return payload if isinstance(payload, dict) else {}


@app.route('/api/health', methods=['GET'])
def health():
    return jsonify({"status": "ok"})


@app.route('/api/auth/send-otp', methods=['POST'])
def send_otp():
    payload = _request_payload()
    try:
        device_id = _build_client().send_otp(payload.get('mobile'))
    except SwiggyError as exc:
        app.logger.warning("OTP request failed (%s): %s", exc.code, exc)
        return _error_response(exc)
    except Exception as exc:  # pragma: no cover - defensive logging
        app.logger.exception("Unexpected error requesting OTP: %s", exc)
        return jsonify({"error": "Something went wrong. Please try the token method."}), 500
    return jsonify({"success": True, "deviceId": device_id, "message": "OTP sent successfully"})


@app.route('/api/auth/verify-otp', methods=['POST'])
def verify_otp():
    payload = _request_payload()
    try:
        token = _build_client().verify_otp(
            payload.get('mobile'), payload.get('otp'), payload.get('deviceId')
        )
    except SwiggyError as exc:
        app.logger.warning("OTP verification failed (%s): %s", exc.code, exc)
        return _error_response(exc)
    except Exception as exc:  # pragma: no cover - defensive logging
        app.logger.exception("Unexpected error verifying OTP: %s", exc)
        return jsonify({"error": "Something went wrong. Please try again."}), 500
    return jsonify({"success": True, "token": token})


@app.route('/api/orders', methods=['POST'])
def fetch_orders():
    payload = _request_payload()
    try:
        history = _build_client().fetch_order_history(payload.get('token'))
    except SwiggyError as exc:
        app.logger.warning("Order history fetch failed (%s): %s", exc.code, exc)
        return _error_response(exc)
    except Exception as exc:  # pragma: no cover - defensive logging
        app.logger.exception("Unexpected error fetching orders: %s", exc)
        return jsonify({"error": f"Failed to fetch orders: {exc}"}), 500

    response = {
        "success": True,
        "orders": history.orders,
        "totalOrders": len(history.orders),
        "pages": history.pages,
        "stopReason": history.stop_reason,
    }
    if history.is_empty:
        response["empty"] = True
        response["message"] = "No orders found for this account."
    return jsonify(response)


@app.route('/api/dashboard', methods=['POST'])
def build_dashboard():
    """Return the spending dashboard for posted ``orders`` or for a session ``token``."""
    payload = _request_payload()
    orders: Optional[Any] = payload.get('orders')
    timezone_name = payload.get('timezone') or CONFIG.timezone
    if not isinstance(timezone_name, str):
        return jsonify({"error": "timezone must be an IANA timezone name", "code": "INVALID_REQUEST"}), 400

    if orders is None:
        try:
            orders = _build_client().fetch_order_history(payload.get('token')).orders
        except SwiggyError as exc:
            app.logger.warning("Order history fetch failed (%s): %s", exc.code, exc)
            return _error_response(exc)
    if not isinstance(orders, list):
        return jsonify({"error": "orders must be a list of order objects", "code": "INVALID_REQUEST"}), 400

    try:
        dashboard = get_analytics_engine().build_dashboard(
            orders, timezone_name=timezone_name
        )
    except ValueError as exc:
        return jsonify({"error": str(exc), "code": "INVALID_REQUEST"}), 400
    except Exception as exc:  # pragma: no cover - defensive logging
        app.logger.exception("Failed to build dashboard: %s", exc)
        return jsonify({"error": "Failed to build dashboard."}), 500

    return jsonify({
        "success": True,
        "dashboard": dashboard.to_dict(),
        "restaurantPreview": [entry.to_dict() for entry in dashboard.restaurant_preview()],
    })


def is_port_in_use(port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex(('127.0.0.1', port)) == 0


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    if is_port_in_use(CONFIG.port):
        print(f"Port {CONFIG.port} is already in use. Is another instance running?")
        sys.exit(1)
    print(f"Port {CONFIG.port} is free. Starting new server.")
    app.run(host='127.0.0.1', port=CONFIG.port, debug=False)


if __name__ == '__main__':
    main()
