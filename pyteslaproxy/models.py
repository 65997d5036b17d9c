"""Value types exchanged between the proxy channel, the coordinator and callers."""

from __future__ import annotations

import logging
from enum import Enum
from typing import NamedTuple

from .const import VEHICLE_UNAVAILABLE
from .exceptions import status_message

_LOGGER = logging.getLogger(__name__)


class StrEnum(str, Enum):
    """A string enumeration of type `(str, Enum)`. All members are compared via `upper()`. Defaults to UNKNOWN."""

    @classmethod
    def _missing_(cls, value):
        has_unknown = False
        for member in cls:
            if member.value.upper() == "UNKNOWN":
                has_unknown = True
            if member.value.upper() == str(value).upper():
                return member
        if has_unknown:
            _LOGGER.warning("'%s' is not a valid '%s'", value, cls.__name__)
            return cls.UNKNOWN
        msg = f"'{value}' is not a valid {cls.__name__}"
        raise ValueError(msg)


class WakeState(StrEnum):
    """Connectivity state of a vehicle as reported by the proxy."""

    UNKNOWN = "UNKNOWN"
    ASLEEP = "ASLEEP"
    AWAKE = "AWAKE"


class DeliveryState(StrEnum):
    """Terminal result of delivering one command."""

    DELIVERED = "DELIVERED"
    VEHICLE_UNREACHABLE = "VEHICLE_UNREACHABLE"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    REJECTED_BY_SERVER = "REJECTED_BY_SERVER"
    ABORTED = "ABORTED"
    AWAKE = "AWAKE"


class DeliveryPhase(StrEnum):
    """Step of a delivery reported to progress listeners."""

    CHECKING_WAKE = "CHECKING_WAKE"
    WAKING = "WAKING"
    WAITING = "WAITING"
    SUBMITTING = "SUBMITTING"
    RETRYING = "RETRYING"


class CommandRequest(NamedTuple):
    """A named vehicle command and its parameters."""

    name: str
    parameters: dict | None = None

    @property
    def body(self) -> dict:
        """Return the JSON body to send, a fresh copy each time."""
        return dict(self.parameters or {})


class ProgressEvent(NamedTuple):
    """Progress of a running delivery, elapsed time counted in time units."""

    phase: DeliveryPhase
    attempt: int = 0
    elapsed: float = 0
    wake_state: WakeState = WakeState.UNKNOWN


class DeliveryOutcome:
    """Wraps the result of delivering a command to a vehicle."""

    def __init__(
        self,
        state: DeliveryState,
        *,
        status_code: int | None = None,
        body: str = "",
        detail: str | None = None,
    ) -> None:
        """Construct a new outcome."""
        self.state = DeliveryState(state)
        self.status_code = status_code
        self.body = body
        self.detail = detail

    @classmethod
    def delivered(cls, status_code: int | None = None, body: str = "", detail: str | None = None) -> DeliveryOutcome:
        """Command accepted by the vehicle."""
        return cls(DeliveryState.DELIVERED, status_code=status_code, body=body, detail=detail)

    @classmethod
    def rejected(cls, status_code: int, body: str) -> DeliveryOutcome:
        """Command refused by the proxy or the vehicle."""
        return cls(DeliveryState.REJECTED_BY_SERVER, status_code=status_code, body=body)

    @classmethod
    def transport_error(cls, detail: str) -> DeliveryOutcome:
        """Request failed before an answer could be classified."""
        return cls(DeliveryState.TRANSPORT_ERROR, detail=detail)

    @classmethod
    def unreachable(cls, detail: str | None = None) -> DeliveryOutcome:
        """Vehicle did not wake up within the attempt budget."""
        return cls(DeliveryState.VEHICLE_UNREACHABLE, detail=detail)

    @classmethod
    def aborted(cls, detail: str | None = None) -> DeliveryOutcome:
        """Delivery was cancelled or ran past its deadline."""
        return cls(DeliveryState.ABORTED, detail=detail)

    @classmethod
    def awake(cls, detail: str = "Vehicle is awake") -> DeliveryOutcome:
        """Vehicle is online, no command was sent."""
        return cls(DeliveryState.AWAKE, detail=detail)

    @property
    def delivered_ok(self) -> bool:
        """Return True if the command reached the vehicle."""
        return self.state == DeliveryState.DELIVERED

    @property
    def succeeded(self) -> bool:
        """Return True for a delivered command or a woken vehicle."""
        return self.state in (DeliveryState.DELIVERED, DeliveryState.AWAKE)

    @property
    def vehicle_unavailable(self) -> bool:
        """Return True if the rejection means the vehicle is asleep.

        The proxy has no structured code for this, the body text is matched.
        """
        return self.state == DeliveryState.REJECTED_BY_SERVER and VEHICLE_UNAVAILABLE in self.body.lower()

    @property
    def message(self) -> str:
        """Human readable description of the outcome."""
        if self.state == DeliveryState.DELIVERED:
            return self.detail or "Command delivered"
        if self.state == DeliveryState.REJECTED_BY_SERVER:
            return f"Command failed with status {self.status_code} ({status_message(self.status_code)}): {self.body}"
        if self.state == DeliveryState.VEHICLE_UNREACHABLE:
            return self.detail or "Vehicle did not wake up"
        if self.state == DeliveryState.ABORTED:
            return self.detail or "Delivery aborted"
        if self.state == DeliveryState.AWAKE:
            return self.detail or "Vehicle is awake"
        return f"Request failed: {self.detail}"

    def __eq__(self, other) -> bool:
        """Outcomes compare equal when all their fields match."""
        if not isinstance(other, DeliveryOutcome):
            return NotImplemented
        return (self.state, self.status_code, self.body, self.detail) == (
            other.state,
            other.status_code,
            other.body,
            other.detail,
        )

    def __hash__(self) -> int:
        return hash((self.state, self.status_code, self.body, self.detail))

    def __repr__(self) -> str:
        return f"DeliveryOutcome({self.state.value}, status_code={self.status_code!r}, detail={self.detail!r})"
