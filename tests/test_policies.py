"""Tests for the retry schedules in `pyteslaproxy.policies`."""

import pytest

from pyteslaproxy.exceptions import TeslaConfigError
from pyteslaproxy.policies import (
    ProbeBeforeSend,
    SendFirst,
    policy_for,
    probe_wait,
    resubmit_wait,
)


def test_probe_wait_starts_at_one_unit() -> None:
    assert [probe_wait(i) for i in range(5)] == [1, 1, 1, 1, 1]


def test_probe_wait_grows_every_five_attempts() -> None:
    assert [probe_wait(i) for i in (5, 9, 10, 15, 19)] == [2, 2, 3, 4, 4]


def test_probe_wait_is_capped() -> None:
    assert {probe_wait(i) for i in range(20, 60)} == {5}


def test_probe_wait_total_budget() -> None:
    assert sum(probe_wait(i) for i in range(60)) == 250


def test_resubmit_wait() -> None:
    assert [resubmit_wait(i) for i in (1, 2, 3)] == [8, 11, 14]


@pytest.mark.parametrize(("name", "policy_class"), [("probe", ProbeBeforeSend), ("send-first", SendFirst)])
def test_policy_for(name, policy_class) -> None:
    policy = policy_for(name)
    assert isinstance(policy, policy_class)
    assert policy.name == name


def test_policy_for_unknown_name() -> None:
    with pytest.raises(TeslaConfigError):
        policy_for("yolo")
