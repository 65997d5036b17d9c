"""Deliver commands to a vehicle that may have to be woken up first."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from .channel import VehicleCommandChannel
from .config import ProxyConfig
from .exceptions import TeslaConfigError, TeslaDeliveryAbortedError, TeslaTransportError
from .models import CommandRequest, DeliveryOutcome, DeliveryPhase, ProgressEvent, WakeState
from .policies import DeliveryPolicy, ProbeBeforeSend, policy_for

_LOGGER = logging.getLogger(__name__)


class WakeRetryCoordinator:
    """Delivers commands to one vehicle, one at a time, within a bounded budget.

    :param channel: VehicleCommandChannel to the proxy
    :param vin: vehicle identification number
    :param config: ProxyConfig with the time unit, deadline and policy name
    :param policy: DeliveryPolicy overriding the one named in the config
    :param sleep: coroutine function used for waiting, in seconds
    :param clock: monotonic clock in seconds, used for the deadline
    :param on_progress: callable receiving ProgressEvent updates
    """

    def __init__(
        self,
        channel: VehicleCommandChannel,
        vin: str,
        config: ProxyConfig | None = None,
        policy: DeliveryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_progress: Callable[[ProgressEvent], None] | None = None,
    ) -> None:
        """Initialise the coordinator."""
        if not vin:
            msg = "A vehicle VIN is required"
            raise TeslaConfigError(msg)
        if config is None:
            config = ProxyConfig()
        self.channel = channel
        self.vin = vin
        self.config = config.validate()
        self.policy = policy or policy_for(config.policy)
        self.on_progress = on_progress
        self._sleep = sleep
        self._clock = clock
        self._lock = asyncio.Lock()
        self._abort = asyncio.Event()
        self._started = 0.0
        self.elapsed = 0

    async def deliver(self, command: CommandRequest) -> DeliveryOutcome:
        """Deliver a command with the configured policy and return the final outcome."""
        _LOGGER.debug("Delivering %s to %s with policy %s", command.name, self.vin, self.policy.name)
        return await self._run(self.policy.deliver(self, command))

    async def ensure_awake(self) -> DeliveryOutcome:
        """Wake the vehicle and wait until it is online, without sending a command."""
        policy = self.policy if isinstance(self.policy, ProbeBeforeSend) else ProbeBeforeSend()
        failure = await self._run(policy.ensure_awake(self))
        return failure or DeliveryOutcome.awake()

    async def wake_state(self) -> WakeState:
        """Return the current wake state of the vehicle.

        :raises TeslaTransportError: if the proxy cannot be reached
        """
        async with self._lock:
            return await self.probe()

    def cancel(self) -> None:
        """Abort the running delivery at its next wait."""
        _LOGGER.debug("Cancelling delivery to %s", self.vin)
        self._abort.set()

    async def _run(self, steps) -> DeliveryOutcome:
        async with self._lock:
            self._abort.clear()
            self._started = self._clock()
            self.elapsed = 0
            try:
                return await steps
            except TeslaDeliveryAbortedError as exc:
                _LOGGER.info("Delivery to %s aborted: %s", self.vin, exc)
                return DeliveryOutcome.aborted(str(exc))

    async def probe(self) -> WakeState:
        """Probe the vehicle wake state."""
        return await self.channel.probe_wake_state(self.vin)

    async def wake(self) -> None:
        """Send one wake request."""
        await self.channel.request_wake(self.vin)

    async def submit(self, command: CommandRequest) -> DeliveryOutcome:
        """Submit the command, turning transport failures into an outcome.

        :raises TeslaDeliveryAbortedError: if the delivery was cancelled meanwhile
        """
        self._check_abort()
        self.report(DeliveryPhase.SUBMITTING, 0, WakeState.UNKNOWN)
        try:
            return await self.channel.submit(self.vin, command)
        except TeslaTransportError as exc:
            _LOGGER.warning("Submitting %s to %s failed: %s", command.name, self.vin, exc)
            return DeliveryOutcome.transport_error(str(exc))

    async def wait(self, units: float) -> None:
        """Wait a number of time units, unless cancelled or past the deadline.

        :raises TeslaDeliveryAbortedError: if the delivery has to stop
        """
        self._check_abort()
        seconds = units * self.config.time_unit
        deadline = self.config.delivery_deadline
        if deadline is not None and self._clock() - self._started + seconds > deadline:
            msg = f"delivery deadline of {deadline:g} seconds exceeded"
            raise TeslaDeliveryAbortedError(msg)

        sleeper = asyncio.ensure_future(self._sleep(seconds))
        aborter = asyncio.ensure_future(self._abort.wait())
        try:
            await asyncio.wait({sleeper, aborter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, aborter):
                task.cancel()
        self._check_abort()
        if sleeper.done() and not sleeper.cancelled():
            sleeper.result()
        self.elapsed += units

    def report(self, phase: DeliveryPhase, attempt: int, wake_state: WakeState) -> None:
        """Pass a progress event to the listener, if any."""
        event = ProgressEvent(phase, attempt, self.elapsed, wake_state)
        _LOGGER.debug("Progress for %s: %s", self.vin, event)
        if self.on_progress is not None:
            self.on_progress(event)

    def _check_abort(self) -> None:
        if self._abort.is_set():
            msg = "delivery cancelled"
            raise TeslaDeliveryAbortedError(msg)
