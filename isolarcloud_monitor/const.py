"""Constants for the iSolarCloud monitor.

This module contains all the constants used throughout the application,
including API endpoints, gateway tables, and lookup tables for plant and
device codes.
"""

APP_TITLE = "Sungrow iSolarCloud"
APP_DIR_NAME = "SungrowMonitor"
CREDENTIALS_FILE = "credentials.json"
CONFIG_DIR_ENV = "ISOLARCLOUD_CONFIG_DIR"
LOG_LEVEL_ENV = "ISOLARCLOUD_LOG_LEVEL"

DEFAULT_AUTH_URL = "https://auapi.isolarcloud.com:443/openapi/apiManage/token"
DEFAULT_GATEWAY_URL = "https://augateway.isolarcloud.com"
DEVELOPER_PORTAL_URL = "https://developer-api.isolarcloud.com"

GATEWAYS = {
    "Australia": "https://augateway.isolarcloud.com",
    "China": "https://gateway.isolarcloud.com",
    "International": "https://gateway.isolarcloud.com.hk",
    "Europe": "https://gateway.isolarcloud.eu",
}
DEFAULT_GATEWAY = "Australia"

TOKEN_PATH = "/openapi/apiManage/token"
PLANT_LIST_PATH = "/openapi/platform/queryPowerStationList"
DEVICE_LIST_PATH = "/openapi/platform/getDeviceListByPsId"
DEVICE_POINT_PATH = "/openapi/platform/getDeviceRealTimeData"

RESULT_CODE_SUCCESS = "1"
PAGE_SIZE = 50

HTTP_TIMEOUT = 30.0
RETRY_TOTAL = 3
RETRY_BACKOFF_FACTOR = 0.5

# OAuth callback listener
CALLBACK_PORT_RANGE = range(8080, 8091)
CALLBACK_PATH = "/callback"
CALLBACK_TIMEOUT = 5 * 60
CALLBACK_SHUTDOWN_TIMEOUT = 5.0

ERROR_AUTH_PENDING = "Authentication pending"
ERROR_AUTH_FAILED = "Authentication failed"
ERROR_LOAD_PLANTS_PREFIX = "Failed to load plants: "
ERROR_UNKNOWN = "Unknown error occurred"
ERROR_LOAD_DEVICES = "Failed to load devices"

PLANT_FAULT_STATUS_NORMAL = 3
PLANT_ONLINE = 1
DEVICE_FAULT_STATUS_NORMAL = 4

DEVICE_TYPE_BATTERY = 43
POINT_BATTERY_SOC = 58604
BATTERY_POLL_INTERVAL = 5 * 60

PLANT_TYPES = {
    1: "Utility Plant",
    3: "Distributed PV",
    4: "Residential PV",
    5: "Residential Storage",
    6: "Village Plant",
    7: "Dist. Storage",
    8: "Poverty Alleviation",
    9: "Wind Power",
    12: "C&I Storage",
}
PLANT_TYPE_UNKNOWN = "Unknown"

DEVICE_ICONS = {
    1: "zap",  # Inverter
    3: "power",  # Grid-Connection Point
    4: "boxes",  # Combiner Box
    5: "cloud-sun",  # Meteo Station
    7: "gauge",  # Meter
    9: "cpu",  # Data Logger
    11: "factory",  # Plant
    14: "home",  # Energy Storage System
    17: "container",  # Unit
    41: "settings",  # Optimizer
    43: "battery",  # Battery
    51: "fuel",  # Charger
    55: "sun",  # Microinverter
}
DEVICE_ICON_DEFAULT = "box"

# Tray badge thresholds (inclusive upper bounds) and RGB colours
BADGE_LOW_THRESHOLD = 20
BADGE_MEDIUM_THRESHOLD = 50
BADGE_COLOR_LOW = (220, 38, 38)
BADGE_COLOR_MEDIUM = (234, 179, 8)
BADGE_COLOR_HIGH = (22, 163, 74)
