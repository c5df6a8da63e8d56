"""
udi-http-co2-pg3x NodeServer/Plugin for EISY/Polisy

(C) 2025

node HTTPCO2

CO2 sensor read from an HTTP endpoint. The level is extracted from the
response body with a regular expression and may additionally be pushed in
through the notification server or MQTT.
"""

# std libraries
pass

# external libraries
import requests
from udi_interface import Node, LOGGER

# personal libraries
from http_base.cache import Cache
from http_base.config_parser import ConfigError, parse_url_property, parse_pattern, parse_mqtt_options
from http_base.http_client import http_request, is_http_success_code
from http_base.mqtt_client import MQTTClient
from http_base.notifications import register_notification_if_defined
from http_base.pull_timer import PullTimer
from http_base.utils import PatternError, extract_value_from_pattern, get_characteristic, to_number
from .const import (
    VERSION,
    MANUFACTURER,
    MODEL,
    SERIAL_NUMBER,
    DEFAULT_STATUS_PATTERN,
    DEFAULT_PATTERN_GROUP,
    DEFAULT_STATUS_CACHE,
    CHARACTERISTIC_CO2_LEVEL,
    DRIVER_CO2_LEVEL,
)


class HTTPCO2Error(Exception):
    """Raised when the current CO2 level cannot be read."""


class HTTPCO2(Node):
    """Node representing a CO2 sensor polled over HTTP."""
    id = 'httpco2'

    # push update characteristic name -> driver
    characteristics = {CHARACTERISTIC_CO2_LEVEL: DRIVER_CO2_LEVEL}

    def __init__(self, polyglot, primary, address, name, device):
        """Initializes the HTTPCO2 node.

        A missing or invalid getUrl leaves the node non-functional: the error
        is logged and get_services() returns an empty list.

        Args:
            polyglot: Reference to the Polyglot interface.
            primary: The address of the parent node.
            address: The address of this node.
            name: The name of this node.
            device: Sensor configuration block.
        """
        super().__init__(polyglot, primary, address, name)
        self.controller = self.poly.getNode(self.primary)
        self.lpfx = f'{address}:{name}'
        self.debug = bool(device.get("debug", False))
        self.valid = False
        self.get_url = None
        self.pull_timer = None
        self.mqtt_client = None
        self.notification_id = device.get("notificationID")
        self.notification_password = device.get("notificationPassword")

        if not self._load_url(device):
            return

        self.status_cache = self._load_cache(device)
        self.status_pattern = self._load_pattern(device)
        self.pattern_group = self._load_pattern_group(device)

        pull_interval = device.get("pullInterval")
        if pull_interval:
            try:
                self.pull_timer = PullTimer(pull_interval, self.get_co2, self._set_level)
            except (TypeError, ValueError) as ex:
                LOGGER.warning(f"{self.lpfx} Property 'pullInterval' is invalid ({ex}). Pulling disabled!")

        if device.get("mqtt"):
            self._load_mqtt(device["mqtt"])

        self.valid = True
        self.poly.subscribe(self.poly.START, self.start, address)


    def _load_url(self, device) -> bool:
        """Parses the mandatory getUrl property."""
        if not device.get("getUrl"):
            LOGGER.warning(f"{self.lpfx} Property 'getUrl' is required!")
            LOGGER.warning(f"{self.lpfx} Aborting...")
            return False
        try:
            self.get_url = parse_url_property(device["getUrl"])
        except ConfigError as ex:
            LOGGER.warning(f"{self.lpfx} Error occurred while parsing 'getUrl': {ex}")
            LOGGER.warning(f"{self.lpfx} Aborting...")
            return False
        return True


    def _load_cache(self, device) -> Cache:
        try:
            return Cache(device.get("statusCache"), DEFAULT_STATUS_CACHE)
        except (TypeError, ValueError):
            LOGGER.warning(f"{self.lpfx} Property 'statusCache' must be a number! Using default value!")
            return Cache(DEFAULT_STATUS_CACHE)


    def _load_pattern(self, device):
        pattern = parse_pattern(DEFAULT_STATUS_PATTERN)
        if device.get("statusPattern"):
            try:
                pattern = parse_pattern(device["statusPattern"])
            except ConfigError:
                LOGGER.warning(f"{self.lpfx} Property 'statusPattern' was given in an unsupported type. Using default value!")
        return pattern


    def _load_pattern_group(self, device) -> int:
        group = device.get("patternGroupToExtract")
        if not group:
            return DEFAULT_PATTERN_GROUP
        if isinstance(group, int) and not isinstance(group, bool):
            return group
        LOGGER.warning(f"{self.lpfx} Property 'patternGroupToExtract' must be a number! Using default value!")
        return DEFAULT_PATTERN_GROUP


    def _load_mqtt(self, mqtt_config):
        """Creates the MQTT client. Failures disable MQTT only."""
        try:
            options = parse_mqtt_options(mqtt_config)
        except ConfigError as ex:
            LOGGER.error(f"{self.lpfx} Error occurred while parsing MQTT property: {ex}")
            LOGGER.error(f"{self.lpfx} MQTT will not be enabled!")
            return
        try:
            self.mqtt_client = MQTTClient(options, self.handle_notification, self.lpfx)
        except Exception as ex:
            LOGGER.error(f"{self.lpfx} Error occurred creating MQTT client: {ex}")


    def start(self):
        """Starts pulling and push transports once the node is added."""
        if not self.valid:
            LOGGER.warning(f"{self.lpfx} not configured, not starting")
            return
        if self.pull_timer:
            self.pull_timer.start()

        self.register_notification()

        if self.mqtt_client:
            try:
                self.mqtt_client.connect()
            except Exception as ex:
                LOGGER.error(f"{self.lpfx} Error occurred connecting MQTT client: {ex}")
        LOGGER.debug(f"{self.lpfx} Exit")


    def register_notification(self, server=None) -> bool:
        """Registers handle_notification under notificationID on server.

        Defaults to the controller's notification server.
        """
        if server is None:
            server = getattr(self.controller, "notification_server", None)
        return register_notification_if_defined(
            server,
            self.notification_id,
            self.notification_password,
            self.handle_notification,
        )


    def stop(self):
        """Stops the pull timer and MQTT client.

        Also drops the START subscription so a node removed and re-added at
        the same address is not started twice.
        """
        if self.valid:
            self.poly.unsubscribe(self.poly.START, self.start, self.address)
        if self.pull_timer:
            self.pull_timer.stop()
        if self.mqtt_client:
            self.mqtt_client.disconnect()
        server = getattr(self.controller, "notification_server", None)
        if self.notification_id and server is not None:
            server.unregister(str(self.notification_id))
        LOGGER.debug(f"{self.lpfx} Exit")


    def identify(self):
        LOGGER.info(f"{self.lpfx} Identify requested!")


    def get_services(self):
        """Returns [information, self], or [] when not configured."""
        if not self.valid:
            return []
        information = {
            "manufacturer": MANUFACTURER,
            "model": MODEL,
            "serial_number": SERIAL_NUMBER,
            "firmware_revision": VERSION,
        }
        return [information, self]


    def handle_notification(self, body):
        """Overwrites a driver with a pushed value.

        Args:
            body: {"characteristic": <name>, "value": <value>}
        """
        characteristic = body.get("characteristic")
        driver = get_characteristic(self, characteristic)
        if driver is None:
            LOGGER.info(f"{self.lpfx} Encountered unknown characteristic when handling notification "
                        f"(or characteristic which wasn't added to the service): {characteristic}")
            return

        LOGGER.info(f"{self.lpfx} Updating {characteristic} to new value: {body.get('value')}")
        try:
            value = to_number(body.get("value"))
        except (TypeError, ValueError):
            LOGGER.error(f"{self.lpfx} Dropping non-numeric value for {characteristic}: {body.get('value')!r}")
            return
        self.setDriver(driver, value)


    def get_co2(self):
        """Returns the current CO2 level in ppm.

        Answered from the node when the status cache is fresh, otherwise
        fetched from getUrl.

        Raises:
            HTTPCO2Error: request failed, non-2xx status, or pattern mismatch.
        """
        if not self.status_cache.should_query():
            value = self.getDriver(DRIVER_CO2_LEVEL)
            if self.debug:
                infinite = " (infinite cache)" if self.status_cache.is_infinite() else ""
                LOGGER.info(f"{self.lpfx} Co2 returning cached value {value}{infinite}")
            return value

        try:
            response = http_request(self.get_url)
        except requests.RequestException as ex:
            self._reset_pull_timer()
            LOGGER.error(f"{self.lpfx} Co2 failed: {ex}")
            raise HTTPCO2Error(f"Co2 request failed: {ex}") from ex
        self._reset_pull_timer()

        if not is_http_success_code(response.status_code):
            LOGGER.error(f"{self.lpfx} Co2 returned http error: {response.status_code}")
            raise HTTPCO2Error(f"Got http error code {response.status_code}")

        try:
            co2level = to_number(extract_value_from_pattern(self.status_pattern, response.text, self.pattern_group))
        except (PatternError, ValueError) as ex:
            LOGGER.error(f"{self.lpfx} Co2 error occurred while extracting co2 from body: {ex}")
            raise HTTPCO2Error("pattern error") from None

        if self.debug:
            LOGGER.info(f"{self.lpfx} Co2 is currently at {co2level}")

        self.status_cache.queried()
        return co2level


    def _reset_pull_timer(self):
        if self.pull_timer:
            self.pull_timer.reset_timer()


    def _set_level(self, value):
        self.setDriver(DRIVER_CO2_LEVEL, value)
        self.setDriver("ST", 1)


    def query(self, command=None):
        """Handles the 'QUERY' command from ISY.

        Reads the level through get_co2 and reports all drivers.
        """
        LOGGER.info(f"{self.lpfx} {command}")
        if self.valid:
            try:
                value = self.get_co2()
            except HTTPCO2Error as ex:
                LOGGER.warning(f"{self.lpfx} query failed: {ex}")
                self.setDriver("ST", 0)
            else:
                self._set_level(value)
        self.reportDrivers()
        LOGGER.debug(f"{self.lpfx} Exit")


    hint = '0x01030200'
    # home, sensor, multilevel sensor
    # Hints See: https://github.com/UniversalDevicesInc/hints


    """
    UOMs:
    2: boolean
    54: parts per million

    Driver controls:
    ST: Status, last read succeeded
    CO2LVL: CO2 Level
    """
    drivers = [
        {"driver": "ST", "value": 0, "uom": 2, "name": "Status"},
        {"driver": "CO2LVL", "value": 0, "uom": 54, "name": "CO2 Level"},
    ]


    """
    Commands that this node can handle.
    Should match the 'accepts' section of the nodedef file.
    """
    commands = {
        "QUERY": query,
    }
