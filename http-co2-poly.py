#!/usr/bin/env python3
"""
This is a Plugin/NodeServer for Polyglot v3 written in Python3
It is a plugin to expose CO2 sensors read over HTTP to Polyglot for EISY/Polisy

udi-http-co2-pg3x NodeServer/Plugin for EISY/Polisy

(c) 2025 Stephen Jenkins
"""

# std libraries
import sys

# external libraries
import udi_interface

# local imports
from nodes import Controller, VERSION

LOGGER = udi_interface.LOGGER

"""
0.1.0
DONE HTTPCO2 node: getUrl polling with regex extraction and status cache
DONE pullInterval timer, reset on every fetch
DONE push updates from notification server and per-sensor MQTT
DONE devfile (YAML) / devlist (JSON) sensor configuration
"""

if __name__ == "__main__":
    polyglot = None
    try:
        """
        Instantiates the Interface to Polyglot.
        """
        polyglot = udi_interface.Interface([])
        """
        Starts MQTT and connects to Polyglot.
        """
        polyglot.start(VERSION)
        polyglot.updateProfile()

        """
        Creates the Controller Node; it creates one sensor node per
        configured sensor once the custom parameters arrive.
        """
        control = Controller(polyglot, "co2ctrl", "co2ctrl", "HTTP CO2")

        """
        Sits around and does nothing forever, keeping your program running.
        """
        polyglot.runForever()
    except (KeyboardInterrupt, SystemExit):
        LOGGER.warning("Received interrupt or exit...")
        """
        Catch SIGTERM or Control-C and exit cleanly.
        """
        if polyglot is not None:
            polyglot.stop()
    except Exception as err:
        LOGGER.error("Exception: {0}".format(err), exc_info=True)
    sys.exit(0)
