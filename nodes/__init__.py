"""Node classes used by the HTTP CO2 Node Server."""

from .const import VERSION as VERSION
from .HTTPCO2 import HTTPCO2 as HTTPCO2
from .Controller import Controller as Controller
