"""Trigger remote services on a vehicle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .const import DOOR_LOCK, DOOR_UNLOCK, SET_SENTRY_MODE
from .models import CommandRequest, DeliveryOutcome, WakeState

if TYPE_CHECKING:
    from .coordinator import WakeRetryCoordinator

_LOGGER = logging.getLogger(__name__)


class RemoteServices:
    """Trigger remote services on a vehicle."""

    def __init__(self, coordinator: WakeRetryCoordinator):
        """Initialise the remote services of the coordinator's vehicle."""
        self._coordinator = coordinator

    @property
    def vin(self) -> str:
        """Return the VIN of the vehicle."""
        return self._coordinator.vin

    async def lock_doors(self) -> DeliveryOutcome:
        """Remote service for locking the doors."""
        _LOGGER.debug("Locking vehicle %s", self.vin)
        return await self._send_command(CommandRequest(DOOR_LOCK))

    async def unlock_doors(self) -> DeliveryOutcome:
        """Remote service for unlocking the doors."""
        _LOGGER.debug("Unlocking vehicle %s", self.vin)
        return await self._send_command(CommandRequest(DOOR_UNLOCK))

    async def sentry_mode(self, on: bool) -> DeliveryOutcome:
        """Remote service for switching sentry mode on or off."""
        _LOGGER.debug("Setting sentry mode of %s to %s", self.vin, on)
        return await self._send_command(CommandRequest(SET_SENTRY_MODE, {"on": on}))

    async def wake_up(self) -> DeliveryOutcome:
        """Remote service for waking the vehicle without sending a command."""
        _LOGGER.debug("Waking vehicle %s", self.vin)
        return await self._coordinator.ensure_awake()

    async def wake_state(self) -> WakeState:
        """Return whether the vehicle is currently awake."""
        return await self._coordinator.wake_state()

    async def _send_command(self, command: CommandRequest) -> DeliveryOutcome:
        _LOGGER.debug("Executing remote command %s with payload %s", command.name, command.body)
        outcome = await self._coordinator.deliver(command)
        _LOGGER.debug("Got result: %s", outcome)
        return outcome
