"""
udi-http-co2-pg3x NodeServer/Plugin for EISY/Polisy

(C) 2025

http_base config_parser

Validation of the user supplied sensor configuration blocks.
"""

# std libraries
import json
import re
from typing import Any, Dict

# external libraries
pass

# personal libraries
pass

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD")
DEFAULT_MQTT_PORT = 1883
DEFAULT_MQTTS_PORT = 8883


class ConfigError(Exception):
    """Raised for a configuration property that cannot be used."""


def parse_url_property(url_property) -> Dict[str, Any]:
    """Normalizes a url property into a request description.

    A plain string is a GET of that url. An object must carry 'url' and may
    set method, body, headers, auth, strictSSL and requestTimeout (ms).
    """
    if isinstance(url_property, str):
        url_property = {"url": url_property}
    if not isinstance(url_property, dict):
        raise ConfigError("url property must be a string or an object")

    url = url_property.get("url")
    if not isinstance(url, str) or not url:
        raise ConfigError("'url' is required and must be a string")
    if not re.match(r"^https?://", url, re.IGNORECASE):
        raise ConfigError(f"'url' must start with http:// or https:// (got '{url}')")

    method = url_property.get("method", "GET")
    if not isinstance(method, str) or method.upper() not in HTTP_METHODS:
        raise ConfigError(f"'method' {method!r} is not supported")

    body = url_property.get("body")
    if body is not None and not isinstance(body, str):
        try:
            body = json.dumps(body)
        except (TypeError, ValueError) as ex:
            raise ConfigError(f"'body' could not be serialized: {ex}") from ex

    headers = url_property.get("headers", {})
    if not isinstance(headers, dict):
        raise ConfigError("'headers' must be an object")

    auth = url_property.get("auth")
    if auth is not None:
        auth = _parse_auth(auth)

    strict_ssl = url_property.get("strictSSL", False)
    if not isinstance(strict_ssl, bool):
        raise ConfigError("'strictSSL' must be a boolean")

    timeout = url_property.get("requestTimeout")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
        raise ConfigError("'requestTimeout' must be a positive number of milliseconds")

    return {
        "url": url,
        "method": method.upper(),
        "body": body,
        "headers": {str(k): str(v) for k, v in headers.items()},
        "auth": auth,
        "strictSSL": strict_ssl,
        "requestTimeout": timeout,
    }


def _parse_auth(auth) -> Dict[str, Any]:
    if not isinstance(auth, dict):
        raise ConfigError("'auth' must be an object")
    username = auth.get("username")
    password = auth.get("password", "")
    if not isinstance(username, str) or not isinstance(password, str):
        raise ConfigError("'auth' requires string 'username' and 'password'")
    return {
        "username": username,
        "password": password,
        "digest": bool(auth.get("digest", False)),
        "sendImmediately": bool(auth.get("sendImmediately", True)),
    }


def parse_pattern(pattern):
    """Compiles a status pattern string."""
    if not isinstance(pattern, str):
        raise ConfigError("pattern must be a string")
    try:
        return re.compile(pattern)
    except re.error as ex:
        raise ConfigError(f"invalid pattern '{pattern}': {ex}") from ex


def parse_mqtt_options(config) -> Dict[str, Any]:
    """Validates an 'mqtt' block.

    Example:
        {"host": "broker.local", "port": 1883,
         "credentials": {"username": "u", "password": "p"},
         "subscriptions": [{"topic": "home/co2",
                            "characteristic": "CarbonDioxideLevel"}]}
    """
    if not isinstance(config, dict):
        raise ConfigError("mqtt property must be an object")

    host = config.get("host")
    if not isinstance(host, str) or not host:
        raise ConfigError("mqtt 'host' is required")

    protocol = config.get("protocol", "mqtt")
    if protocol not in ("mqtt", "mqtts"):
        raise ConfigError(f"mqtt 'protocol' {protocol!r} is not supported")

    default_port = DEFAULT_MQTTS_PORT if protocol == "mqtts" else DEFAULT_MQTT_PORT
    port = config.get("port", default_port)
    if isinstance(port, str) and port.isdigit():
        port = int(port)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError(f"mqtt 'port' {port!r} is invalid")

    qos = config.get("qos", 0)
    if qos not in (0, 1, 2):
        raise ConfigError(f"mqtt 'qos' {qos!r} must be 0, 1 or 2")

    credentials = config.get("credentials")
    username = password = None
    if credentials is not None:
        if not isinstance(credentials, dict) or not isinstance(credentials.get("username"), str):
            raise ConfigError("mqtt 'credentials' requires a 'username'")
        username = credentials["username"]
        password = credentials.get("password")

    subscriptions = config.get("subscriptions", [])
    if isinstance(subscriptions, dict):
        subscriptions = [subscriptions]
    if not isinstance(subscriptions, list):
        raise ConfigError("mqtt 'subscriptions' must be a list")

    return {
        "host": host,
        "port": port,
        "protocol": protocol,
        "qos": qos,
        "username": username,
        "password": password,
        "client_id": config.get("clientId"),
        "keepalive": int(config.get("keepalive", 60)),
        "subscriptions": [_parse_subscription(sub) for sub in subscriptions],
    }


def _parse_subscription(sub) -> Dict[str, Any]:
    if not isinstance(sub, dict):
        raise ConfigError("mqtt subscription must be an object")
    topic = sub.get("topic")
    characteristic = sub.get("characteristic")
    if not isinstance(topic, str) or not topic:
        raise ConfigError("mqtt subscription requires a 'topic'")
    if not isinstance(characteristic, str) or not characteristic:
        raise ConfigError(f"mqtt subscription '{topic}' requires a 'characteristic'")

    pattern = None
    if sub.get("messagePattern") is not None:
        pattern = parse_pattern(sub["messagePattern"])
    group = sub.get("patternGroupToExtract", 1)
    if isinstance(group, bool) or not isinstance(group, int):
        raise ConfigError(f"mqtt subscription '{topic}' patternGroupToExtract must be a number")

    return {
        "topic": topic,
        "characteristic": characteristic,
        "messagePattern": pattern,
        "patternGroupToExtract": group,
    }
