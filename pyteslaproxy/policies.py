"""Strategies for getting a command through to a vehicle that may be asleep."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from .const import POLICY_PROBE, POLICY_SEND_FIRST
from .exceptions import TeslaConfigError, TeslaTransportError
from .models import CommandRequest, DeliveryOutcome, DeliveryPhase, WakeState

if TYPE_CHECKING:
    from .coordinator import WakeRetryCoordinator

_LOGGER = logging.getLogger(__name__)

#: number of polls after a wake request before giving up
WAKE_POLL_ATTEMPTS = 60

#: longest wait between two polls, in time units
WAKE_POLL_MAX_WAIT = 5

#: polls between two progress reports
WAKE_POLL_REPORT_EVERY = 5

#: resubmissions after a "vehicle unavailable" rejection
RESUBMIT_ATTEMPTS = 3

#: wake requests per resubmission round, stopping at the first accepted one
WAKE_REQUEST_ATTEMPTS = 3

#: wait between two failed wake requests, in time units
WAKE_REQUEST_SPACING = 1


def probe_wait(attempt_index: int) -> int:
    """Units to wait before poll ``attempt_index`` (0-based): 1 for the first five, one more every five, at most 5."""
    return min(1 + attempt_index // WAKE_POLL_REPORT_EVERY, WAKE_POLL_MAX_WAIT)


def resubmit_wait(attempt_index: int) -> int:
    """Units to wait before resubmission ``attempt_index`` (1-based): 8, 11, 14."""
    return 5 + 3 * attempt_index


class DeliveryPolicy(ABC):
    """Decides when to wake the vehicle and when to (re)submit a command."""

    name: str = ""

    @abstractmethod
    async def deliver(self, coordinator: WakeRetryCoordinator, command: CommandRequest) -> DeliveryOutcome:
        """Deliver the command through the coordinator and return the final outcome."""


class ProbeBeforeSend(DeliveryPolicy):
    """Make sure the vehicle is online before sending anything to it."""

    name = POLICY_PROBE

    def __init__(self, max_attempts: int = WAKE_POLL_ATTEMPTS) -> None:
        """Initialise the policy with the number of polls after a wake request."""
        self.max_attempts = max_attempts

    async def deliver(self, coordinator: WakeRetryCoordinator, command: CommandRequest) -> DeliveryOutcome:
        """Wake the vehicle if needed, then submit the command once."""
        failure = await self.ensure_awake(coordinator)
        if failure is not None:
            return failure
        return await coordinator.submit(command)

    async def ensure_awake(self, coordinator: WakeRetryCoordinator) -> DeliveryOutcome | None:
        """Check that the vehicle is awake, waking it and polling if it is not.

        :return: None once the vehicle is awake, otherwise the failed outcome
        """
        try:
            state = await coordinator.probe()
        except TeslaTransportError as exc:
            # an unreadable status is handled like a sleeping vehicle
            _LOGGER.warning("Could not check if %s is awake: %s", coordinator.vin, exc)
            state = WakeState.UNKNOWN
        coordinator.report(DeliveryPhase.CHECKING_WAKE, 0, state)

        if state == WakeState.AWAKE:
            _LOGGER.debug("Vehicle %s is awake", coordinator.vin)
            return None

        _LOGGER.info("Vehicle %s is sleeping, sending wake command", coordinator.vin)
        coordinator.report(DeliveryPhase.WAKING, 0, state)
        try:
            await coordinator.wake()
        except TeslaTransportError as exc:
            _LOGGER.warning("Could not wake %s: %s", coordinator.vin, exc)
            return DeliveryOutcome.transport_error(str(exc))

        for attempt in range(self.max_attempts):
            await coordinator.wait(probe_wait(attempt))
            try:
                state = await coordinator.probe()
            except TeslaTransportError as exc:
                _LOGGER.debug("Poll %d for %s failed: %s", attempt + 1, coordinator.vin, exc)
                state = WakeState.UNKNOWN

            if state == WakeState.AWAKE:
                _LOGGER.info("Vehicle %s is now awake after %d polls", coordinator.vin, attempt + 1)
                return None

            if (attempt + 1) % WAKE_POLL_REPORT_EVERY == 0:
                coordinator.report(DeliveryPhase.WAITING, attempt + 1, state)

        msg = f"Vehicle did not wake up after {self.max_attempts} attempts ({coordinator.elapsed:g} time units)"
        _LOGGER.warning(msg)
        return DeliveryOutcome.unreachable(msg)


class SendFirst(DeliveryPolicy):
    """Send the command right away and only wake the vehicle if it turns out to be asleep."""

    name = POLICY_SEND_FIRST

    def __init__(
        self,
        max_retries: int = RESUBMIT_ATTEMPTS,
        wake_attempts: int = WAKE_REQUEST_ATTEMPTS,
    ) -> None:
        """Initialise the policy with its retry ceilings."""
        self.max_retries = max_retries
        self.wake_attempts = wake_attempts

    async def deliver(self, coordinator: WakeRetryCoordinator, command: CommandRequest) -> DeliveryOutcome:
        """Submit, and resubmit with wake requests in between while the vehicle is unavailable."""
        outcome = await coordinator.submit(command)

        for attempt in range(1, self.max_retries + 1):
            if not outcome.vehicle_unavailable:
                return outcome

            _LOGGER.info("Vehicle %s is unavailable, waking it (retry %d/%d)", coordinator.vin, attempt, self.max_retries)
            coordinator.report(DeliveryPhase.WAKING, attempt, WakeState.ASLEEP)
            await self.request_wake(coordinator)
            await coordinator.wait(resubmit_wait(attempt))

            coordinator.report(DeliveryPhase.RETRYING, attempt, WakeState.UNKNOWN)
            outcome = await coordinator.submit(command)

        return outcome

    async def request_wake(self, coordinator: WakeRetryCoordinator) -> bool:
        """Fire wake requests until one is accepted, ignoring failures.

        :return: True if the proxy accepted one of them
        """
        for attempt in range(self.wake_attempts):
            if attempt:
                await coordinator.wait(WAKE_REQUEST_SPACING)
            try:
                await coordinator.wake()
            except TeslaTransportError as exc:
                _LOGGER.debug("Wake request %d for %s failed: %s", attempt + 1, coordinator.vin, exc)
            else:
                return True
        return False


def policy_for(name: str) -> DeliveryPolicy:
    """Return a new policy instance for a configured policy name."""
    if name == POLICY_PROBE:
        return ProbeBeforeSend()
    if name == POLICY_SEND_FIRST:
        return SendFirst()
    msg = f"Unknown delivery policy '{name}'"
    raise TeslaConfigError(msg)
