"""Constants for the Blink Cameras integration."""

from __future__ import annotations

DOMAIN = "blink_cameras"

# Configuration keys
CONF_DEVICE_ID = "device_id"
CONF_TIER = "tier"
CONF_SHARED_TIER = "shared_tier"
CONF_SCAN_INTERVAL = "scan_interval"
CONF_PERSIST_AUTH = "persist_auth"
CONF_TRUST_DEVICE = "trust_device"
CONF_DEBUG_AUTH = "debug_auth"
CONF_CODE = "code"

# Default values
DEFAULT_TIER = "prod"
DEFAULT_SCAN_INTERVAL = 60  # seconds
DEFAULT_PERSIST_AUTH = True
DEFAULT_TRUST_DEVICE = True
DEFAULT_DEBUG_AUTH = False
DEFAULT_TIMEOUT = 20  # seconds, per HTTP attempt
DEFAULT_CLIENT_NAME = "homeassistant-blink"

# Scan interval limits (in seconds)
MIN_SCAN_INTERVAL = 10
MAX_SCAN_INTERVAL = 300

# Tiers the upstream service is known to run
KNOWN_TIERS = ("prod", "sqa1", "cemp", "prde", "prsg", "a001", "srf1")

# OAuth
OAUTH_CLIENT_ID = "android"
OAUTH_SCOPE = "client"

# Client identity sent with every request
APP_VERSION = "51.0"
APP_BUILD = "29426569"
APP_BUILD_HEADER = f"ANDROID_{APP_BUILD}"
USER_AGENT = f"Blink/{APP_VERSION} (Python; Home Assistant)"
DEFAULT_LOCALE = "en_US"

# Session behaviour
MAX_CHALLENGE_ATTEMPTS = 3
TOKEN_SAFETY_MARGIN = 60  # seconds before expiry that trigger a refresh
DEFAULT_TOKEN_LIFETIME = 3600  # seconds, when the token response omits expires_in

# Persisted auth storage
AUTH_STORAGE_ENV = "BLINK_AUTH_STORAGE_PATH"
AUTH_FILE_NAME = ".blink-auth.json"
AUTH_FILE_PREFIX = ".blink-auth-"
LEGACY_AUTH_DIR = "blink-auth"
