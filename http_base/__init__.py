"""Helper classes shared by HTTP sensor nodes."""

from .cache import Cache as Cache
from .pull_timer import PullTimer as PullTimer
from .mqtt_client import MQTTClient as MQTTClient
from .notifications import NotificationServer as NotificationServer
from .config_parser import ConfigError as ConfigError
from .utils import PatternError as PatternError
