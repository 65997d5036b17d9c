#  SPDX-License-Identifier: Apache-2.0
"""Authenticated requests against the local vehicle command proxy."""

from __future__ import annotations

import logging

import httpx

from .config import ProxyConfig
from .const import USER_AGENT
from .exceptions import TeslaConfigError, TeslaTransportError
from .models import CommandRequest, DeliveryOutcome, WakeState

_LOGGER = logging.getLogger(__name__)


async def log_request(request):
    """Provide formatting for http logging."""
    headers = dict(request.headers)
    if "authorization" in headers:
        headers["authorization"] = "Bearer <redacted>"
    _LOGGER.debug("Request headers: %s", headers)
    _LOGGER.debug("Request method - url: %s %s", request.method, request.url)
    _LOGGER.debug("Request body: %s", request.content)


class VehicleCommandChannel:
    """Handles the requests of one access token to the vehicle command proxy.

    The proxy presents a local certificate, so certificate verification is off
    unless the config asks for it. Transport stays HTTPS and every request
    carries the bearer token.

    :param access_token: OAuth access token
    :param config: ProxyConfig with the proxy URL and the request timeout
    :param async_client: httpx.AsyncClient or None to create one
    """

    def __init__(
        self,
        access_token: str,
        config: ProxyConfig | None = None,
        async_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the channel to the proxy."""
        if config is None:
            config = ProxyConfig()
        self.config = config.validate()
        if not access_token:
            msg = "An access token is required"
            raise TeslaConfigError(msg)
        self.base_url = config.base_url.rstrip("/")
        if async_client is None:
            async_client = httpx.AsyncClient(
                verify=config.verify_tls,
                timeout=config.timeout,
                event_hooks={"request": [log_request]},
            )
        self.asyncClient = async_client
        self.headers = {
            "User-Agent": USER_AGENT,
            "Authorization": f"Bearer {access_token}",
        }

    async def probe_wake_state(self, vin: str) -> WakeState:
        """Ask the proxy whether the vehicle is online.

        An ``error`` in the answer means the vehicle is offline or asleep,
        whatever the status code.

        :raises TeslaTransportError: on network failure, unparseable answer or
            an error status without an error message
        """
        resp = await self.request("GET", self._vehicle_url(vin))
        try:
            data = resp.json()
        except ValueError as exc:
            msg = "failed to parse response"
            raise TeslaTransportError(resp.status_code, detail=msg) from exc
        if not isinstance(data, dict):
            msg = "unexpected response payload"
            raise TeslaTransportError(resp.status_code, detail=msg)

        if data.get("error"):
            _LOGGER.debug("Vehicle %s reported error: %s", vin, data["error"])
            return WakeState.ASLEEP

        if not resp.is_success:
            raise TeslaTransportError(resp.status_code, detail=resp.text)

        vehicle = data.get("response")
        state = vehicle.get("state") if isinstance(vehicle, dict) else None
        _LOGGER.debug("Vehicle %s state is %s", vin, state)
        return WakeState.AWAKE if state == "online" else WakeState.ASLEEP

    async def request_wake(self, vin: str) -> None:
        """Ask the proxy to wake the vehicle. Does not wait for it to come online.

        :raises TeslaTransportError: on network failure or an error status
        """
        _LOGGER.debug("Sending wake up to %s", vin)
        resp = await self.request("POST", f"{self._vehicle_url(vin)}/wake_up")
        if not resp.is_success:
            msg = f"wake command failed with status {resp.status_code}: {resp.text}"
            raise TeslaTransportError(resp.status_code, detail=msg)

    async def submit(self, vin: str, command: CommandRequest) -> DeliveryOutcome:
        """Send a command and classify the answer.

        :return: a delivered or rejected outcome
        :raises TeslaTransportError: on network failure
        """
        _LOGGER.debug("Submitting %s to %s", command.name, vin)
        resp = await self.request(
            "POST",
            f"{self._vehicle_url(vin)}/command/{command.name}",
            json=command.body,
        )
        if resp.is_success:
            return DeliveryOutcome.delivered(resp.status_code, resp.text)
        _LOGGER.debug("Command %s rejected with %s: %s", command.name, resp.status_code, resp.text)
        return DeliveryOutcome.rejected(resp.status_code, resp.text)

    async def request(self, method, url, **kwargs) -> httpx.Response:
        """Create a request to the proxy, returning the response whatever its status."""
        try:
            return await self.asyncClient.request(
                method,
                url,
                headers=self.headers,
                timeout=self.config.timeout,
                **kwargs,
            )
        except httpx.HTTPError as exc:
            msg = f"request failed: {exc!r}"
            raise TeslaTransportError(detail=msg) from exc

    def _vehicle_url(self, vin: str) -> str:
        if not vin:
            msg = "A vehicle VIN is required"
            raise TeslaConfigError(msg)
        return f"{self.base_url}/api/1/vehicles/{vin}"

    async def close(self):
        """Close the asyncClient connection."""
        await self.asyncClient.aclose()

    async def __aenter__(self) -> VehicleCommandChannel:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
