"""
udi-http-co2-pg3x NodeServer/Plugin for EISY/Polisy

(C) 2025

http_base notifications

Small HTTP endpoint that devices can POST values to instead of waiting for
the next poll. Each sensor registers a notification id; a request to
/<notificationID> with {"characteristic": ..., "value": ...} is handed to
that sensor's handler.
"""

# std libraries
from threading import Thread, Lock
from typing import Any, Callable, Dict, Optional

# external libraries
from flask import Flask, request, jsonify
from werkzeug.serving import make_server
from udi_interface import LOGGER

# personal libraries
pass

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8180


class NotificationServer:
    """Routes pushed notifications to registered handlers."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        self.host = host
        self.port = port
        self._handlers: Dict[str, Dict[str, Any]] = {}
        self._lock = Lock()
        self._server = None
        self._thread = None

        self.app = Flask(__name__)
        self.app.add_url_rule("/<notification_id>", "notify", self._handle_request, methods=["POST"])


    def register(self, notification_id: str, handler: Callable[[Dict[str, Any]], None], password: Optional[str] = None):
        """Registers handler for notification_id, replacing any previous one."""
        with self._lock:
            if notification_id in self._handlers:
                LOGGER.warning(f"Notification id '{notification_id}' registered twice, replacing handler")
            self._handlers[notification_id] = {"handler": handler, "password": password}
        LOGGER.info(f"Registered notification id '{notification_id}'")


    def unregister(self, notification_id: str):
        with self._lock:
            self._handlers.pop(notification_id, None)


    def start(self):
        """Serves the app on a background thread."""
        if self._server is not None:
            return
        self._server = make_server(self.host, self.port, self.app, threaded=True)
        self._thread = Thread(target=self._server.serve_forever, name="notification-server", daemon=True)
        self._thread.start()
        LOGGER.info(f"Notification server listening on {self.host}:{self.port}")


    def stop(self):
        if self._server is None:
            return
        self._server.shutdown()
        self._server = None
        self._thread = None
        LOGGER.info("Notification server stopped")


    def _handle_request(self, notification_id):
        with self._lock:
            registration = self._handlers.get(notification_id)
        if registration is None:
            LOGGER.warning(f"Notification for unknown id '{notification_id}'")
            return jsonify({"status": "error", "message": "unknown notification id"}), 404

        body = request.get_json(silent=True)
        if not isinstance(body, dict) or "characteristic" not in body or "value" not in body:
            LOGGER.warning(f"Malformed notification for '{notification_id}': {request.get_data(as_text=True)}")
            return jsonify({"status": "error", "message": "body must contain characteristic and value"}), 400

        password = registration["password"]
        if password and body.get("password") != password:
            LOGGER.warning(f"Notification for '{notification_id}' rejected: bad password")
            return jsonify({"status": "error", "message": "unauthorized"}), 401

        try:
            registration["handler"]({"characteristic": body["characteristic"], "value": body["value"]})
        except Exception as ex:
            LOGGER.error(f"Notification handler for '{notification_id}' failed: {ex}", exc_info=True)
            return jsonify({"status": "error", "message": "handler failed"}), 500
        return jsonify({"status": "ok"}), 200


def register_notification_if_defined(server, notification_id, password, handler) -> bool:
    """Registers handler when both a server and a notification id exist."""
    if not notification_id:
        return False
    if server is None:
        LOGGER.warning(f"notificationID '{notification_id}' configured but no notification server is running")
        return False
    server.register(str(notification_id), handler, password)
    return True
