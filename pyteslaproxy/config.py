"""Configuration for the proxy channel, the coordinator and the CLI."""

from __future__ import annotations

import configparser
import logging
import os
import re
from pathlib import Path
from typing import NamedTuple
from urllib.parse import urlparse

from dotenv import dotenv_values

from .const import (
    CONFIG_FILE,
    ENV_FILE,
    POLICIES,
    POLICY_PROBE,
    PROXY_BASE_URL,
    REDIRECT_URI,
    TIME_UNIT,
    TIMEOUT,
    TOKEN_FILE,
)
from .exceptions import TeslaConfigError

_LOGGER = logging.getLogger(__name__)

_ENV_KEYS = {
    "TESLA_CLIENT_ID": "client_id",
    "TESLA_CLIENT_SECRET": "client_secret",
    "TESLA_REDIRECT_URI": "redirect_uri",
    "TESLA_VEHICLE_VIN": "vin",
    "TESLA_PROXY_URL": "proxy_url",
    "TESLA_TOKEN_FILE": "token_file",
}


class ProxyConfig(NamedTuple):
    """Connection and retry settings shared by the channel and the coordinator.

    :param base_url: HTTPS base URL of the local command proxy
    :param timeout: per-request timeout in seconds
    :param verify_tls: verify the proxy certificate (it is usually self-signed)
    :param time_unit: seconds per unit in the wake/retry schedules
    :param delivery_deadline: overall bound in seconds for one delivery, or None
    :param policy: name of the delivery policy, ``probe`` or ``send-first``
    """

    base_url: str = PROXY_BASE_URL
    timeout: float = TIMEOUT
    verify_tls: bool = False
    time_unit: float = TIME_UNIT
    delivery_deadline: float | None = None
    policy: str = POLICY_PROBE

    def validate(self) -> ProxyConfig:
        """Raise TeslaConfigError if the settings cannot be used."""
        parsed = urlparse(self.base_url)
        if parsed.scheme != "https" or not parsed.netloc:
            msg = f"Proxy URL must be an https URL, got '{self.base_url}'"
            raise TeslaConfigError(msg)
        if self.timeout <= 0 or self.time_unit < 0:
            msg = "Timeout must be positive and time unit must not be negative"
            raise TeslaConfigError(msg)
        if self.delivery_deadline is not None and self.delivery_deadline <= 0:
            msg = "Delivery deadline must be positive"
            raise TeslaConfigError(msg)
        if self.policy not in POLICIES:
            msg = f"Unknown delivery policy '{self.policy}', expected one of {', '.join(POLICIES)}"
            raise TeslaConfigError(msg)
        return self


class AppSettings(NamedTuple):
    """Settings of the command line client."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = REDIRECT_URI
    vin: str = ""
    token_file: str = TOKEN_FILE
    proxy: ProxyConfig = ProxyConfig()


def normalize_vin(value: str | None) -> str:
    """Strip everything but letters and digits from a VIN and uppercase it."""
    if not value:
        return ""
    return re.sub(r"[^A-Za-z0-9]", "", value).upper()


def _float(value, name):
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        msg = f"Invalid value for {name}: '{value}'"
        raise TeslaConfigError(msg) from exc


def load_settings(
    env_file: str | Path | None = ENV_FILE,
    config_files: list | None = None,
    environ: dict | None = None,
) -> AppSettings:
    """Read settings from config files, then a .env file, then the environment.

    Later sources override earlier ones.
    """
    if config_files is None:
        config_files = [CONFIG_FILE, Path(f"~/{CONFIG_FILE}").expanduser()]
    if environ is None:
        environ = os.environ

    config = configparser.ConfigParser()
    config["tesla"] = {
        "client_id": "",
        "client_secret": "",
        "redirect_uri": REDIRECT_URI,
        "vin": "",
        "token_file": TOKEN_FILE,
        "proxy_url": PROXY_BASE_URL,
        "timeout": str(TIMEOUT),
        "time_unit": str(TIME_UNIT),
        "delivery_deadline": "",
        "policy": POLICY_PROBE,
        "verify_tls": "no",
    }
    read = config.read(config_files)
    _LOGGER.debug("Read config files: %s", read)
    section = config["tesla"]

    values = {key: section.get(key) for key in section}
    if env_file is not None and Path(env_file).is_file():
        _LOGGER.debug("Loading %s", env_file)
        env_values = dotenv_values(env_file)
    else:
        env_values = {}
    for source in (env_values, environ):
        for env_key, key in _ENV_KEYS.items():
            if source.get(env_key):
                values[key] = source[env_key].strip()

    try:
        verify_tls = section.getboolean("verify_tls")
    except ValueError as exc:
        msg = f"Invalid value for verify_tls: '{section.get('verify_tls')}'"
        raise TeslaConfigError(msg) from exc

    deadline = values.get("delivery_deadline")
    proxy = ProxyConfig(
        base_url=values["proxy_url"].rstrip("/"),
        timeout=_float(values["timeout"], "timeout"),
        verify_tls=verify_tls,
        time_unit=_float(values["time_unit"], "time_unit"),
        delivery_deadline=_float(deadline, "delivery_deadline") if deadline else None,
        policy=values["policy"],
    ).validate()

    return AppSettings(
        client_id=values["client_id"],
        client_secret=values["client_secret"],
        redirect_uri=values["redirect_uri"] or REDIRECT_URI,
        vin=normalize_vin(values["vin"]),
        token_file=values["token_file"] or TOKEN_FILE,
        proxy=proxy,
    )
