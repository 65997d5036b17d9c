#  SPDX-License-Identifier: Apache-2.0
"""Constants for the Tesla vehicle command proxy client."""

PROXY_BASE_URL = "https://localhost:4443"

#: per-request timeout in seconds
TIMEOUT = 10.0

#: seconds per time unit in the wake/retry schedules
TIME_UNIT = 1.0

AUTHORIZATION_URL = "https://auth.tesla.com/oauth2/v3/authorize"
TOKEN_URL = "https://auth.tesla.com/oauth2/v3/token"
REDIRECT_URI = "http://localhost:8080/callback"
SCOPE = "openid offline_access vehicle_device_data vehicle_cmds vehicle_charging_cmds"

#: seconds to wait for the browser to hit the OAuth callback
AUTHORIZATION_TIMEOUT = 300

TOKEN_FILE = "tesla-tokens.json"
ENV_FILE = ".env"
CONFIG_FILE = ".teslaproxy.cfg"

USER_AGENT = "pyteslaproxy"

POLICY_PROBE = "probe"
POLICY_SEND_FIRST = "send-first"
POLICIES = (POLICY_PROBE, POLICY_SEND_FIRST)

#: substring of a rejected command body that means the vehicle is asleep
VEHICLE_UNAVAILABLE = "vehicle unavailable"

DOOR_LOCK = "door_lock"
DOOR_UNLOCK = "door_unlock"
SET_SENTRY_MODE = "set_sentry_mode"
