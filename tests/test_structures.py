"""Tests for the typed event and state structures."""

import pytest

from gpiodbus.protocol.structures import DeviceAction, DeviceEvent, NameLostReason


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("add", DeviceAction.ADD),
        ("remove", DeviceAction.REMOVE),
        ("change", DeviceAction.CHANGE),
        ("bind", DeviceAction.OTHER),
        ("", DeviceAction.OTHER),
    ],
)
def test_device_action_from_raw(raw: str, expected: DeviceAction) -> None:
    assert DeviceAction.from_raw(raw) is expected


def test_device_event_keeps_kernel_strings() -> None:
    event = DeviceEvent.from_raw("add", "gpiochip0", "/dev/gpiochip0")

    assert event.action == "add"
    assert event.raw_action == "add"
    assert event.device_name == "gpiochip0"
    assert event.device_node == "/dev/gpiochip0"


def test_unknown_action_keeps_raw_value() -> None:
    event = DeviceEvent.from_raw("online", "gpiochip1")

    assert event.action is DeviceAction.OTHER
    assert event.raw_action == "online"


def test_name_lost_messages() -> None:
    assert NameLostReason.NO_CONNECTION.describe("org.gpiod") == "unable to make connection to the bus"
    assert NameLostReason.CONNECTION_CLOSED.describe("org.gpiod") == "connection to the bus closed, dying..."
    assert NameLostReason.NAME_LOST.describe("org.gpiod") == "name 'org.gpiod' lost on the bus, dying..."
