"""HTTP CO2 Polyglot NodeServer for EISY/Polisy.

This module provides the Controller class for the udi-http-co2-pg3x
NodeServer, which exposes CO2 levels read from HTTP endpoints to the
EISY/Polisy home automation system through the Polyglot interface.

The Controller loads the sensor configuration, creates one HTTPCO2 node per
configured sensor, and runs the notification server sensors can receive
pushed values on.

Author: Stephen Jenkins
Copyright: (C) 2025 Stephen Jenkins
"""

# std libraries
import json, yaml, logging
from threading import Event, Condition
from typing import Optional, Any

# external libraries
from udi_interface import Node, LOGGER, Custom, LOG_HANDLER

# personal libraries
from http_base.notifications import NotificationServer, DEFAULT_HOST, DEFAULT_PORT

# Nodes
from .HTTPCO2 import HTTPCO2

DEFAULT_CONFIG = {
    'notification_host': DEFAULT_HOST,
    'notification_port': DEFAULT_PORT,
}


class Controller(Node):
    """Controller class for the HTTP CO2 Polyglot NodeServer.

    Attributes:
        id (str): Unique identifier for the controller node ('co2ctrl').
        hb (int): Heartbeat counter for monitoring controller status.
        numNodes (int): Number of sensor nodes.
        n_queue (list): Queue for tracking node creation completion.
        queue_condition (Condition): Threading condition for node queue synchronization.
        ready_event (Event): Event signaling when controller is ready for operation.
        all_handlers_st_event (Event): Event signaling when all handlers are complete.
        discovery_in (bool): Flag indicating if discovery is currently in progress.
        devlist (list): List of configured sensor blocks.
        general (dict): General configuration items from the devfile.
        notification_server (NotificationServer): Receiver for pushed values.
    """
    id = 'co2ctrl'

    def __init__(self, poly, primary, address, name):
        """Initialize the Controller node.

        Args:
            poly: Polyglot interface instance for communication with EISY/Polisy.
            primary: Primary node address (typically the controller itself).
            address: Unique address for this controller node.
            name: Human-readable name for the controller node.
        """
        super().__init__(poly, primary, address, name)

        # importand flags, timers, vars
        self.hb = 0 # heartbeat
        self.numNodes = 0

        # storage arrays & conditions
        self.n_queue = []
        self.queue_condition = Condition()

        # Events & in
        self.ready_event = Event()
        self.all_handlers_st_event = Event()
        self.discovery_in = False

        # startup completion flags
        self.handler_params_st = None
        self.handler_data_st = None
        self.handler_typedparams_st = None
        self.handler_typeddata_st = None

        self.devlist = []
        # e.g. [{'name': 'Office CO2', 'getUrl': 'http://10.0.0.5/co2', 'pullInterval': 60000}]
        self.general = {}
        self.notification_server = None
        self.notification_host = DEFAULT_CONFIG['notification_host']
        self.notification_port = DEFAULT_CONFIG['notification_port']

        # Create data storage classes
        self.Notices         = Custom(poly, 'notices')
        self.Parameters      = Custom(poly, 'customparams')
        self.Data            = Custom(poly, 'customdata')
        self.TypedParameters = Custom(poly, 'customtypedparams')
        self.TypedData       = Custom(poly, 'customtypeddata')

        # Subscribe to various events from the Interface class.
        self.poly.subscribe(self.poly.START,             self.start, address)
        self.poly.subscribe(self.poly.POLL,              self.poll)
        self.poly.subscribe(self.poly.LOGLEVEL,          self.handleLevelChange)
        self.poly.subscribe(self.poly.CUSTOMPARAMS,      self.parameterHandler)
        self.poly.subscribe(self.poly.CUSTOMDATA,        self.dataHandler)
        self.poly.subscribe(self.poly.STOP,              self.stop)
        self.poly.subscribe(self.poly.DISCOVER,          self.discover_cmd)
        self.poly.subscribe(self.poly.CUSTOMTYPEDDATA,   self.typedDataHandler)
        self.poly.subscribe(self.poly.CUSTOMTYPEDPARAMS, self.typedParameterHandler)
        self.poly.subscribe(self.poly.ADDNODEDONE,       self.node_queue)

        # Tell the interface we have subscribed to all the events we need.
        # Once we call ready(), the interface will start publishing data.
        self.poly.ready()

        # Tell the interface we exist.
        self.poly.addNode(self, conn_status='ST')


    def start(self):
        """Initialize and start the NodeServer.

        Called by the Polyglot handler during startup. Waits for the
        configuration handlers, starts the notification server and creates
        the sensor nodes.
        """
        LOGGER.info(f"HTTP CO2 PG3 NodeServer {self.poly.serverdata['version']}")
        self.Notices.clear()
        self.Notices['hello'] = 'Start-up'
        self.setDriver('ST', 1, report = True, force = True)

        # Send the profile files to the ISY if neccessary or version changed.
        self.poly.updateProfile()

        # Send the default custom parameters documentation file to Polyglot
        self.poly.setCustomParamsDoc()

        # Initializing a heartbeat
        self.heartbeat()

        # Wait for all handlers to finish
        LOGGER.warning(f'Waiting for all handlers to complete...')
        self.Notices['waiting'] = 'Waiting on valid configuration'
        self.all_handlers_st_event.wait(timeout=60)
        if not self.all_handlers_st_event.is_set():
            # start-up failed
            LOGGER.error("Timed out waiting for handlers to startup")
            self.setDriver('ST', 2) # start-up failed
            self.Notices['error'] = 'Error start-up timeout.  Check config & restart'
            return

        # Discover and wait for discovery to complete
        discoverSuccess = self.discover_cmd()

        if not discoverSuccess:
            # start-up failed
            LOGGER.error(f'First discovery failed!!! exit {self.name}')
            self.Notices['error'] = 'Error first discovery.  Check config & restart'
            self.setDriver('ST', 2)
            return

        if not self._notification_start():
            LOGGER.error(f'Notification server failed!!! exit {self.name}')
            self.Notices['error'] = 'Error starting notification server.  Check notification_port & restart'
            self.setDriver('ST', 2)
            return

        self.Notices.delete('waiting')
        LOGGER.info('Started HTTP CO2 NodeServer v%s', self.poly.serverdata)
        self.query(command = f"{self.name}: STARTUP")

        # signal to the nodes, its ok to start
        self.ready_event.set()

        # clear inital start-up message
        if self.Notices.get('hello'):
            self.Notices.delete('hello')

        LOGGER.info(f'exit {self.name}')


    def _notification_start(self):
        """Start the notification server if any sensor has a notificationID.

        Returns:
            bool: True if the server is running or not needed, False on error.
        """
        if not any(dev.get('notificationID') for dev in self.devlist):
            LOGGER.info("No notificationID configured, notification server not started")
            return True
        try:
            self.notification_server.start()
        except OSError as ex:
            LOGGER.error(f"Error starting notification server on {self.notification_host}:{self.notification_port}: {ex}")
            return False
        return True


    def node_queue(self, data):
        """Handle node creation completion notification.

        Called when a node has been created by the Polyglot interface. Since
        addNode() returns before the node is fully created, this and
        wait_for_node_done() let discovery wait until the node is ready.

        Args:
            data (dict): Event data containing the node address.
        """
        address = data.get('address')
        if address:
            with self.queue_condition:
                self.n_queue.append(address)
                self.queue_condition.notify()

    def wait_for_node_done(self):
        """Wait for a node creation to complete."""
        with self.queue_condition:
            while not self.n_queue:
                self.queue_condition.wait(timeout = 0.2)
            self.n_queue.pop()


    def dataHandler(self, data):
        """Handle custom data loading from Polyglot."""
        LOGGER.debug(f'enter: Loading data {data}')
        if data is None:
            LOGGER.warning("No custom data")
        else:
            self.Data.load(data)
        self.handler_data_st = True
        self.check_handlers()


    def parameterHandler(self, params):
        """Handle custom parameters from Polyglot dashboard.

        Args:
            params: Custom parameters from Polyglot interface.
        """
        LOGGER.info('parmHandler: Loading parameters now')
        self.Parameters.load(params)
        self.handler_params_st = True
        self.check_handlers()
        LOGGER.info('parmHandler Done...')


    def typedParameterHandler(self, params):
        """Handle custom typed parameters from Polyglot."""
        LOGGER.debug('Loading typed parameters now')
        self.TypedParameters.load(params)
        LOGGER.debug(params)
        self.handler_typedparams_st = True
        self.check_handlers()


    def typedDataHandler(self, data):
        """Handle custom typed data from Polyglot dashboard."""
        LOGGER.debug('Loading typed data now')
        if data is None:
            LOGGER.warning("No custom data")
        else:
            self.TypedData.load(data)
        LOGGER.debug(f'Loaded typed data {data}')
        self.handler_typeddata_st = True
        self.check_handlers()


    def check_handlers(self):
        """Set all_handlers_st_event once every startup handler has run."""
        if (self.handler_params_st and self.handler_data_st and
            self.handler_typedparams_st and self.handler_typeddata_st):
            self.all_handlers_st_event.set()


    def checkParams(self):
        """Load and validate configuration parameters.

        Loads sensor configuration from a YAML devfile and/or a JSON devlist
        parameter. devlist entries take precedence over devfile entries with
        the same name.

        Returns:
            bool: True if configuration loaded successfully, False otherwise.
        """
        self.devlist = []
        self.general = {}

        if not self.Parameters.get("devfile") and not self.Parameters.get("devlist"):
            LOGGER.error("checkParams: No devfile or devlist configured! Must be configured.")
            return False

        # Load sensor configuration from YAML file
        if self.Parameters.get("devfile"):
            if not self._load_devfile_config():
                return False

        # Load sensor configuration from JSON string
        if self.Parameters.get("devlist"):
            if not self._load_devlist_config():
                return False

        return self._load_notification_parameters()


    def _load_devfile_config(self):
        """Load sensor configuration from YAML file.

        The YAML file should contain 'general' and 'sensors' sections. The
        general section is converted from an array of dictionaries to a flat
        dictionary for easier access.

        Returns:
            bool: True if configuration loaded successfully, False otherwise.
        """
        devfile_path = self.Parameters["devfile"]
        if not devfile_path or not isinstance(devfile_path, str):
            LOGGER.error("Invalid devfile path provided")
            return False

        try:
            with open(devfile_path, 'r', encoding='utf-8') as file:
                dev_yaml = yaml.safe_load(file)
        except (OSError, yaml.YAMLError) as ex:
            error_type = "open" if isinstance(ex, OSError) else "parse"
            LOGGER.error(f"Failed to {error_type} {devfile_path}: {ex}")
            return False

        if not isinstance(dev_yaml, dict) or "sensors" not in dev_yaml:
            LOGGER.error(f"Sensor file {devfile_path} is missing sensors section")
            return False
        sensors = dev_yaml.get("sensors") or []
        general = dev_yaml.get("general") or []
        LOGGER.info(f"sensors = {sensors}")
        LOGGER.info(f"general = {general}")

        self.devlist = list(sensors)
        self.general = {k: v for d in general for k, v in d.items()}
        return True


    def _load_devlist_config(self):
        """Load sensor configuration from JSON string.

        Accepts a single sensor object or a list of them; each one is upserted
        into the devlist loaded from the devfile.

        Returns:
            bool: True if configuration loaded successfully, False otherwise.
        """
        devlist_data = self.Parameters["devlist"]
        try:
            if isinstance(devlist_data, str):
                parsed_data = json.loads(devlist_data)
            else:
                parsed_data = devlist_data

            if isinstance(parsed_data, dict):
                parsed_data = [parsed_data]
            if not isinstance(parsed_data, list) or not all(isinstance(d, dict) for d in parsed_data):
                LOGGER.error("Devlist data must be an object or a list of objects")
                return False

            # devlist items take precidence over devfile
            for entry in parsed_data:
                self.upsert_by_name(self.devlist, entry)
        except (json.JSONDecodeError, TypeError) as ex:
            LOGGER.error(f"Failed to parse devlist: {ex}")
            return False
        return True


    def upsert_by_name(self, config_list, new_entry):
        """Replace the entry with the same name, or append new_entry."""
        new_name = new_entry.get('name')
        for i, entry in enumerate(config_list):
            if entry.get('name') == new_name:
                config_list[i] = new_entry  # Replace
                return
        config_list.append(new_entry)  # Append if not found


    def _load_notification_parameters(self) -> bool:
        """Load notification server settings.

        Fallback order: custom parameters, devfile general section, defaults.
        The server object is created here so sensor nodes can register with it
        before it starts listening.
        """
        try:
            self.notification_host = self._get_str(
                self.Parameters.get("notification_host"),
                self.general.get("notification_host"),
                DEFAULT_CONFIG.get("notification_host")
            )
            self.notification_port = self._get_int(
                self.Parameters.get("notification_port"),
                self.general.get("notification_port"),
                DEFAULT_CONFIG.get("notification_port")
            )
        except (ValueError, TypeError) as ex:
            LOGGER.error(f"Failed to parse notification parameters: {ex}")
            return False

        server = self.notification_server
        if server is None:
            self.notification_server = NotificationServer(self.notification_host, self.notification_port)
        elif (server.host, server.port) != (self.notification_host, self.notification_port):
            self._notification_rebuild()
        return True


    def _notification_rebuild(self):
        """Replace the notification server after host or port changed.

        The old server is stopped and running sensors re-register on the new
        one, which discover_cmd or start then starts.
        """
        LOGGER.info(f"Notification server moving to {self.notification_host}:{self.notification_port}")
        self.notification_server.stop()
        self.notification_server = NotificationServer(self.notification_host, self.notification_port)
        nodes = self.poly.getNodes()
        for address in nodes:
            if isinstance(nodes[address], HTTPCO2):
                nodes[address].register_notification(self.notification_server)


    @staticmethod
    def _get_str(*args: Optional[Any]) -> Optional[str]:
        """Return the first string argument, or None."""
        for val in args:
            if isinstance(val, str):
                return val
        return None

    @staticmethod
    def _get_int(*args: Optional[Any]) -> Optional[int]:
        """Return the first argument that is or parses as an int, or None."""
        for val in args:
            if isinstance(val, int) and not isinstance(val, bool):
                return val
            if isinstance(val, str) and val.isdigit():
                return int(val)
        return None


    def handleLevelChange(self, level):
        """Handle log level changes from Polyglot.

        Args:
            level (dict): Dictionary containing the new log level information.
        """
        LOGGER.info(f'enter: level={level}')
        if level['level'] < 10:
            LOGGER.info("Setting basic config to DEBUG...")
            LOG_HANDLER.set_basic_config(True,logging.DEBUG)
        else:
            LOGGER.info("Setting basic config to WARNING...")
            LOG_HANDLER.set_basic_config(True,logging.WARNING)
        LOGGER.info(f'exit: level={level}')


    def poll(self, flag):
        """Handle polling events from Polyglot.

        Sensor values are pulled by each node's own timer; the controller
        only sends its heartbeat on short poll.
        """
        # no updates until node is through start-up
        if not self.ready_event.is_set():
            LOGGER.error(f"Node not ready yet, exiting")
            return

        if 'shortPoll' in flag:
            LOGGER.debug('shortPoll (controller)')
            self.heartbeat()


    def query(self, command=None):
        """Report the drivers of every node, controller included."""
        LOGGER.info(f"Enter {command}")
        nodes = self.poly.getNodes()
        for node in nodes:
            nodes[node].reportDrivers()
        LOGGER.debug(f"Exit")


    def discover_cmd(self, command=None):
        """Perform sensor discovery and node creation.

        Called during controller startup and when a DISCOVER command is
        received from the ISY, e.g. after the devfile was edited.

        Returns:
            bool: True if discovery completed successfully, False otherwise.
        """
        LOGGER.info(command)
        success = False
        if self.discovery_in:
            LOGGER.info('Discover already running.')
            return success

        self.discovery_in = True
        LOGGER.info("In Discovery...")

        if self.checkParams() and self._discover():
            success = True
            LOGGER.info("Discovery Success")
            # start-up starts the server itself, later discoveries may add the first notificationID
            if self.ready_event.is_set() and not self._notification_start():
                self.Notices['error'] = 'Error starting notification server.  Check notification_port'
        else:
            LOGGER.error("Discovery Failure")
        self.discovery_in = False
        return success


    def _discover(self):
        """Create nodes for configured sensors and remove stale ones.

        Returns:
            bool: True if discovery completed successfully, False otherwise.
        """
        success = False
        nodes_existing = self.poly.getNodes()
        LOGGER.debug(f"current nodes = {nodes_existing}")
        nodes_old = [node for node in nodes_existing if node != self.address]
        nodes_new = []

        try:
            self._discover_nodes(nodes_existing, nodes_new)
            self._cleanup_nodes(nodes_new, nodes_old)
            self.numNodes = len(nodes_new)
            self.setDriver('GV0', self.numNodes)
            success = True
            LOGGER.info(f"Discovery complete. success = {success}")
        except Exception as ex:
            LOGGER.error(f'Discovery Failure: {ex}', exc_info=True)
        return success


    def _discover_nodes(self, nodes_existing, nodes_new):
        """Create sensor nodes that do not exist yet.

        Args:
            nodes_existing (dict): Dictionary of existing nodes.
            nodes_new (list): List to track the addresses of configured nodes.
        """
        LOGGER.info(f"discovery start")
        for dev in self.devlist:
            if not self._validate_device_definition(dev):
                continue

            name = dev["name"]
            address = self._format_device_address(dev)

            if address not in nodes_existing:
                if not self._create_device_node(dev, name, address):
                    continue
                self.wait_for_node_done()
            nodes_new.append(address)
        LOGGER.info("Done adding nodes.")
        LOGGER.debug(f'DEVLIST: {self.devlist}')


    def _validate_device_definition(self, dev):
        """Check that a sensor block is an object with a name."""
        if not isinstance(dev, dict) or not isinstance(dev.get("name"), str) or not dev["name"]:
            LOGGER.error(f"Invalid sensor definition: {json.dumps(dev, default=str)}")
            return False
        return True


    def _create_device_node(self, dev, name, address):
        """Create an HTTPCO2 node from a sensor block.

        Nodes whose configuration is unusable expose no services and are not
        added.

        Returns:
            bool: True if node created successfully, False otherwise.
        """
        node = HTTPCO2(self.poly, self.address, address, name, dev)
        services = node.get_services()
        if not services:
            LOGGER.error(f"Sensor {name} is not configured correctly, not adding")
            self.Notices[address] = f"Sensor {name}: invalid getUrl, check configuration"
            return False

        information = services[0]
        LOGGER.info(f"Adding {information['model']} {name} (fw {information['firmware_revision']})")
        self.poly.addNode(node)
        return True


    def _cleanup_nodes(self, nodes_new, nodes_old):
        """Remove nodes that are no longer configured."""
        for node in nodes_old:
            if (node not in nodes_new):
                LOGGER.info(f"need to delete node {node}")
                existing = self.poly.getNode(node)
                if isinstance(existing, HTTPCO2):
                    existing.stop()
                self.poly.delNode(node)
                LOGGER.info(f"Done Cleanup")
        return True


    def _format_device_address(self, dev) -> str:
        """Format a sensor name as a valid ISY address (max 14 chars)."""
        name = dev.get("id", dev["name"]).replace("_", "").replace("-", "_")
        return self.poly.getValidAddress(name)


    def delete(self, command=None):
        """Handle NodeServer deletion."""
        LOGGER.info(command)
        self.setDriver('ST', 0, report = True, force = True)
        LOGGER.info('bye bye ... deleted.')


    def stop(self, command=None):
        """Handle NodeServer shutdown.

        Stops the sensor nodes' timers and MQTT clients and the notification
        server.
        """
        LOGGER.info(command)
        self.setDriver('ST', 0, report = True, force = True)
        self.Notices.clear()
        nodes = self.poly.getNodes()
        for address in nodes:
            if isinstance(nodes[address], HTTPCO2):
                nodes[address].stop()
        if self.notification_server:
            self.notification_server.stop()
        LOGGER.info('NodeServer stopped.')


    def heartbeat(self):
        """Alternately send DON and DOF to the ISY on each short poll."""
        LOGGER.debug(f'heartbeat: hb={self.hb}')
        command = "DOF" if self.hb else "DON"
        self.reportCmd(command, 2)
        self.hb = not self.hb
        LOGGER.debug("Exit")


    # Status that this node has. Should match the 'sts' section
    # of the nodedef file.
    drivers = [
        {'driver': 'ST', 'value': 1, 'uom': 25, 'name': "Controller Status"},
        {'driver': 'GV0', 'value': 0, 'uom': 107, 'name': "NumberOfNodes"},
    ]

    # Commands that this node can handle.  Should match the
    # 'accepts' section of the nodedef file.
    commands = {
        'DISCOVER': discover_cmd,
        'QUERY': query,
    }
