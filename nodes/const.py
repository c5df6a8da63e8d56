"""Constants shared by the plugin entry point and nodes."""

VERSION = "0.1.0"

# accessory information
MANUFACTURER = "Robomigo"
MODEL = "HTTP CO2 Sensor"
SERIAL_NUMBER = "RBM01"

# sensor defaults
DEFAULT_STATUS_PATTERN = r"([0-9]{1,3})"
DEFAULT_PATTERN_GROUP = 1
DEFAULT_STATUS_CACHE = 0  # ms, always query

# push update characteristic names -> node drivers
CHARACTERISTIC_CO2_LEVEL = "CarbonDioxideLevel"
DRIVER_CO2_LEVEL = "CO2LVL"
