"""Tests for `pyteslaproxy.models`."""

from pyteslaproxy.models import CommandRequest, DeliveryOutcome, DeliveryState, WakeState

from .responses import COMMAND_FORBIDDEN_BODY, COMMAND_UNAVAILABLE_BODY


def test_command_body_is_a_copy() -> None:
    parameters = {"on": True}
    command = CommandRequest("set_sentry_mode", parameters)

    body = command.body
    body["on"] = False

    assert command.body == {"on": True}
    assert CommandRequest("door_lock").body == {}


def test_vehicle_unavailable_signature() -> None:
    assert DeliveryOutcome.rejected(408, COMMAND_UNAVAILABLE_BODY).vehicle_unavailable
    assert DeliveryOutcome.rejected(500, "Vehicle Unavailable").vehicle_unavailable
    assert not DeliveryOutcome.rejected(403, COMMAND_FORBIDDEN_BODY).vehicle_unavailable
    # only rejections carry the signature
    assert not DeliveryOutcome.delivered(200, COMMAND_UNAVAILABLE_BODY).vehicle_unavailable


def test_messages() -> None:
    assert DeliveryOutcome.delivered(200).message == "Command delivered"
    assert DeliveryOutcome.rejected(429, "slow down").message == (
        "Command failed with status 429 (TOO_MANY_REQUESTS): slow down"
    )
    assert DeliveryOutcome.transport_error("timed out").message == "Request failed: timed out"
    assert DeliveryOutcome.unreachable().message == "Vehicle did not wake up"
    assert DeliveryOutcome.aborted("delivery cancelled").message == "delivery cancelled"


def test_state_lookup_is_case_insensitive() -> None:
    assert DeliveryState("delivered") == DeliveryState.DELIVERED
    assert WakeState("awake") == WakeState.AWAKE
    assert WakeState("charging") == WakeState.UNKNOWN


def test_equality() -> None:
    assert DeliveryOutcome.rejected(403, "no") == DeliveryOutcome.rejected(403, "no")
    assert DeliveryOutcome.rejected(403, "no") != DeliveryOutcome.rejected(404, "no")
    assert DeliveryOutcome.delivered() != "DELIVERED"


def test_awake_is_not_a_delivered_command() -> None:
    outcome = DeliveryOutcome.awake()

    assert outcome.state == DeliveryState.AWAKE
    assert outcome.message == "Vehicle is awake"
    assert outcome.succeeded
    assert not outcome.delivered_ok
    assert DeliveryOutcome.delivered(200).succeeded
    assert not DeliveryOutcome.rejected(403, "no").succeeded
