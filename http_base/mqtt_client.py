"""
udi-http-co2-pg3x NodeServer/Plugin for EISY/Polisy

(C) 2025

http_base MQTTClient

Per-sensor MQTT connection. Messages on subscribed topics are turned into
push updates of the form {"characteristic": ..., "value": ...}.
"""

# std libraries
from typing import Any, Callable, Dict, Optional

# external libraries
from udi_interface import LOGGER
from paho.mqtt.client import Client, topic_matches_sub
from paho.mqtt.enums import CallbackAPIVersion

# personal libraries
from .utils import extract_value_from_pattern, PatternError


class MQTTClient:
    """Subscribes to the configured topics and forwards values.

    Args:
        options: Parsed options from config_parser.parse_mqtt_options.
        push_handler: Callable receiving {"characteristic", "value"} dicts.
        name: Used as log prefix.
    """

    def __init__(self, options: Dict[str, Any], push_handler: Callable[[Dict[str, Any]], None], name: str = "mqtt"):
        self.options = options
        self.push_handler = push_handler
        self.lpfx = f"{name}:mqtt"
        self.subscriptions = options.get("subscriptions", [])

        self.mqttc = Client(CallbackAPIVersion.VERSION2, client_id=options.get("client_id") or "")
        self.mqttc.on_connect = self._on_connect
        self.mqttc.on_disconnect = self._on_disconnect
        self.mqttc.on_message = self._on_message
        if options.get("username"):
            self.mqttc.username_pw_set(options["username"], options.get("password"))
        if options.get("protocol") == "mqtts":
            self.mqttc.tls_set()


    def connect(self):
        """Connects asynchronously and starts the network loop thread."""
        LOGGER.info(f"{self.lpfx} connecting to {self.options['host']}:{self.options['port']}")
        self.mqttc.connect_async(self.options["host"], self.options["port"], keepalive=self.options.get("keepalive", 60))
        self.mqttc.loop_start()


    def disconnect(self):
        self.mqttc.loop_stop()
        self.mqttc.disconnect()
        LOGGER.info(f"{self.lpfx} disconnected")


    def _on_connect(self, _mqttc, _userdata, _flags, reason_code, _properties):
        if reason_code != 0:
            LOGGER.error(f"{self.lpfx} connect failed: {reason_code}")
            return
        LOGGER.info(f"{self.lpfx} connected")
        self.subscribe()


    def _on_disconnect(self, _mqttc, _userdata, _flags, reason_code, _properties):
        if reason_code != 0:
            # loop thread reconnects on its own
            LOGGER.warning(f"{self.lpfx} unexpected disconnect: {reason_code}")
        else:
            LOGGER.info(f"{self.lpfx} graceful disconnection")


    def subscribe(self):
        """Subscribes to every configured topic."""
        qos = self.options.get("qos", 0)
        for sub in self.subscriptions:
            result, mid = self.mqttc.subscribe(sub["topic"], qos)
            if result == 0:
                LOGGER.info(f"{self.lpfx} subscribed to {sub['topic']} MID: {mid}")
            else:
                LOGGER.error(f"{self.lpfx} failed to subscribe {sub['topic']} res: {result}")


    def _on_message(self, _mqttc, _userdata, message):
        topic = message.topic
        payload = message.payload.decode("utf-8", errors="replace")
        LOGGER.debug(f"{self.lpfx} received {topic}: {payload}")
        for sub in self.subscriptions:
            if not topic_matches_sub(sub["topic"], topic):
                continue
            value = self._extract(sub, payload)
            if value is None:
                continue
            try:
                self.push_handler({"characteristic": sub["characteristic"], "value": value})
            except Exception as ex:
                LOGGER.error(f"{self.lpfx} failed to handle message from {topic}: {ex}", exc_info=True)


    def _extract(self, sub: Dict[str, Any], payload: str) -> Optional[str]:
        pattern = sub.get("messagePattern")
        if pattern is None:
            return payload.strip()
        try:
            return extract_value_from_pattern(pattern, payload, sub.get("patternGroupToExtract", 1))
        except PatternError as ex:
            LOGGER.error(f"{self.lpfx} could not extract value for {sub['topic']}: {ex}")
            return None
