"""
Test suite for http_base config_parser.

Tests cover:
- getUrl as string and object
- Auth, headers, body and timeout validation
- Pattern compilation
- MQTT options and subscriptions
"""

import pytest
from http_base.config_parser import (
    parse_url_property,
    parse_pattern,
    parse_mqtt_options,
    ConfigError,
)


class TestParseUrlProperty:
    """Tests for parse_url_property."""

    def test_string_url(self):
        result = parse_url_property("http://10.0.0.5/co2")

        assert result["url"] == "http://10.0.0.5/co2"
        assert result["method"] == "GET"
        assert result["body"] is None
        assert result["headers"] == {}
        assert result["auth"] is None
        assert result["strictSSL"] is False
        assert result["requestTimeout"] is None

    def test_object_url(self):
        result = parse_url_property({
            "url": "https://sensor.local/api",
            "method": "post",
            "body": {"query": "co2"},
            "headers": {"X-Token": "abc", "X-Count": 3},
            "strictSSL": True,
            "requestTimeout": 5000,
        })

        assert result["method"] == "POST"
        assert result["body"] == '{"query": "co2"}'
        assert result["headers"] == {"X-Token": "abc", "X-Count": "3"}
        assert result["strictSSL"] is True
        assert result["requestTimeout"] == 5000

    def test_auth(self):
        result = parse_url_property({
            "url": "http://sensor.local",
            "auth": {"username": "admin", "password": "secret", "digest": True},
        })

        assert result["auth"] == {
            "username": "admin",
            "password": "secret",
            "digest": True,
            "sendImmediately": True,
        }

    @pytest.mark.parametrize("value", [
        None,
        42,
        {},
        {"url": ""},
        {"url": "ftp://sensor.local"},
        "sensor.local/co2",
        {"url": "http://a", "method": "FETCH"},
        {"url": "http://a", "headers": ["x"]},
        {"url": "http://a", "auth": "admin:secret"},
        {"url": "http://a", "auth": {"password": "x"}},
        {"url": "http://a", "strictSSL": "yes"},
        {"url": "http://a", "requestTimeout": -1},
        {"url": "http://a", "requestTimeout": "fast"},
    ])
    def test_invalid(self, value):
        with pytest.raises(ConfigError):
            parse_url_property(value)


class TestParsePattern:
    """Tests for parse_pattern."""

    def test_valid(self):
        assert parse_pattern(r"co2=(\d+)").pattern == r"co2=(\d+)"

    def test_not_a_string(self):
        with pytest.raises(ConfigError):
            parse_pattern(5)

    def test_invalid_regex(self):
        with pytest.raises(ConfigError):
            parse_pattern("([0-9]")


class TestParseMqttOptions:
    """Tests for parse_mqtt_options."""

    def test_minimal(self):
        options = parse_mqtt_options({"host": "broker.local"})

        assert options["host"] == "broker.local"
        assert options["port"] == 1883
        assert options["protocol"] == "mqtt"
        assert options["qos"] == 0
        assert options["username"] is None
        assert options["subscriptions"] == []

    def test_full(self):
        options = parse_mqtt_options({
            "host": "broker.local",
            "port": "1884",
            "qos": 1,
            "credentials": {"username": "user", "password": "pw"},
            "subscriptions": [{
                "topic": "sensors/+/co2",
                "characteristic": "CarbonDioxideLevel",
                "messagePattern": r"(\d+)",
                "patternGroupToExtract": 1,
            }],
        })

        assert options["port"] == 1884
        assert options["qos"] == 1
        assert options["username"] == "user"
        assert options["password"] == "pw"
        sub = options["subscriptions"][0]
        assert sub["topic"] == "sensors/+/co2"
        assert sub["characteristic"] == "CarbonDioxideLevel"
        assert sub["messagePattern"].pattern == r"(\d+)"

    def test_mqtts_default_port(self):
        assert parse_mqtt_options({"host": "b", "protocol": "mqtts"})["port"] == 8883

    def test_single_subscription_object(self):
        options = parse_mqtt_options({
            "host": "b",
            "subscriptions": {"topic": "t", "characteristic": "CarbonDioxideLevel"},
        })

        assert len(options["subscriptions"]) == 1
        assert options["subscriptions"][0]["messagePattern"] is None

    @pytest.mark.parametrize("value", [
        "broker.local",
        {},
        {"host": "b", "port": 0},
        {"host": "b", "port": "abc"},
        {"host": "b", "protocol": "ws"},
        {"host": "b", "qos": 3},
        {"host": "b", "credentials": {"password": "x"}},
        {"host": "b", "subscriptions": "t"},
        {"host": "b", "subscriptions": [{"characteristic": "CarbonDioxideLevel"}]},
        {"host": "b", "subscriptions": [{"topic": "t"}]},
        {"host": "b", "subscriptions": [{"topic": "t", "characteristic": "c", "messagePattern": "("}]},
        {"host": "b", "subscriptions": [{"topic": "t", "characteristic": "c", "patternGroupToExtract": "1"}]},
    ])
    def test_invalid(self, value):
        with pytest.raises(ConfigError):
            parse_mqtt_options(value)
