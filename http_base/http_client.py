"""
udi-http-co2-pg3x NodeServer/Plugin for EISY/Polisy

(C) 2025

http_base http_client

Thin wrapper around requests for the request descriptions produced by
config_parser.parse_url_property.
"""

# std libraries
pass

# external libraries
import requests
from requests.auth import HTTPBasicAuth, HTTPDigestAuth
from udi_interface import LOGGER

# personal libraries
pass

DEFAULT_TIMEOUT_MS = 20000


def http_request(url_object) -> requests.Response:
    """Performs the request described by url_object.

    Returns:
        requests.Response for any status code.

    Raises:
        requests.RequestException: transport failure (refused, timeout, ...).
    """
    timeout_ms = url_object.get("requestTimeout") or DEFAULT_TIMEOUT_MS
    LOGGER.debug(f"http_request: {url_object['method']} {url_object['url']}")
    return requests.request(
        url_object["method"],
        url_object["url"],
        data=url_object.get("body"),
        headers=url_object.get("headers") or None,
        auth=_build_auth(url_object.get("auth")),
        verify=url_object.get("strictSSL", False),
        timeout=timeout_ms / 1000,
    )


def _build_auth(auth):
    if not auth:
        return None
    if auth.get("digest"):
        return HTTPDigestAuth(auth["username"], auth["password"])
    return HTTPBasicAuth(auth["username"], auth["password"])


def is_http_success_code(status_code: int) -> bool:
    return 200 <= status_code <= 299
