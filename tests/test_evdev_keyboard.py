# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
# The only way we can do this AT ALL is with some fakes standing in for the device.
from __future__ import annotations

import collections
import collections.abc
import contextlib
import logging
import pathlib
from typing import TYPE_CHECKING

import pytest
import trio
import trio.testing

import systemchord.device.evdev_keyboard  # important to preserve the namespace for monkeypatching
from systemchord.device.evdev_keyboard import KeyboardListener, open_event_channel, translate_event
from systemchord.device.hwtypes import DeviceDisconnectedError, KeyboardDisconnect, KeyEvent, KeyPress, RawEvent
from systemchord.device.keycodes import EventType, KeyCode

if TYPE_CHECKING:
    from typing import ClassVar

SAMPLE_PATH = pathlib.Path("/test/kbd/sample")


def key(code: KeyCode, value: int) -> RawEvent:
    return RawEvent(type=EventType.EV_KEY, code=code, value=value)


class FakeEventDevice(contextlib.AbstractContextManager):
    devices: ClassVar[dict[pathlib.Path, FakeEventDevice]] = {}
    present: ClassVar[set[pathlib.Path]] = set()

    def __new__(cls, device_path: pathlib.Path):
        if device_path not in cls.devices:
            dev = super().__new__(cls)
            dev.setup(device_path)
            cls.devices[device_path] = dev
        return cls.devices[device_path]

    def __init__(self, device_path: pathlib.Path):
        pass

    def setup(self, device_path: pathlib.Path):
        self.device_path = device_path
        self.eventqueue = collections.deque()
        self.is_open = False
        self.open_count = 0
        self.throw_next_time = False

    def __enter__(self):
        if self.device_path not in self.present:
            raise FileNotFoundError(2, "No such file or directory", str(self.device_path))
        self.is_open = True
        self.open_count += 1
        return self

    def __exit__(self, _exc_type, _exc_value, _traceback):
        self.is_open = False
        self.throw_next_time = False
        self.eventqueue.clear()
        return False

    def has_code(self, type, code):
        return True

    def events(self) -> collections.abc.Iterator[RawEvent]:
        while True:
            if self.throw_next_time:
                raise DeviceDisconnectedError()
            try:
                yield self.eventqueue.popleft()
            except IndexError:
                return

    def unplug(self):
        self.present.discard(self.device_path)
        self.throw_next_time = True


@pytest.fixture(autouse=True)
def fake_event_device(monkeypatch: pytest.MonkeyPatch):
    FakeEventDevice.devices = {}
    FakeEventDevice.present = set()
    monkeypatch.setattr(systemchord.device.evdev_keyboard, "EventDevice", FakeEventDevice)


def receive_all(receive_channel: trio.MemoryReceiveChannel):
    events = []
    while True:
        try:
            events.append(receive_channel.receive_nowait())
        except trio.WouldBlock:
            return events


@pytest.mark.parametrize(
    "raw,expected",
    (
        (key(KeyCode.KEY_A, 1), KeyEvent(key=KeyCode.KEY_A, press=KeyPress.PRESSED)),
        (key(KeyCode.KEY_LEFTCTRL, 0), KeyEvent(key=KeyCode.KEY_LEFTCTRL, press=KeyPress.RELEASED)),
        (key(KeyCode.KEY_A, 2), None),
        (key(KeyCode.KEY_A, 7), None),
        (RawEvent(type=EventType.EV_KEY, code=0x110, value=1), None),  # BTN_LEFT
        (RawEvent(type=EventType.EV_MSC, code=4, value=30), None),
        (RawEvent(type=EventType.EV_SYN, code=0, value=0), None),
    ),
)
def test_translate_event(raw: RawEvent, expected):
    assert translate_event(raw) == expected


def test_unexpected_value_warns(caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.WARNING, logger="systemchord.device.evdev_keyboard"):
        translate_event(key(KeyCode.KEY_A, 7))
    assert "Unexpected event value `7`" in caplog.text


@pytest.mark.trio
async def test_listener_forwards_key_events(nursery: trio.Nursery, autojump_clock: trio.testing.MockClock):
    FakeEventDevice.present.add(SAMPLE_PATH)
    fakedevice = FakeEventDevice(SAMPLE_PATH)
    listener = KeyboardListener(SAMPLE_PATH)
    send_channel, receive_channel = open_event_channel(16)
    await nursery.start(listener.run, send_channel)
    await listener.connected.wait_value(True)
    assert fakedevice.is_open

    fakedevice.eventqueue.extend(
        [
            key(KeyCode.KEY_LEFTCTRL, 1),
            RawEvent(type=EventType.EV_SYN, code=0, value=0),
            key(KeyCode.KEY_LEFTCTRL, 2),
            key(KeyCode.KEY_A, 1),
            key(KeyCode.KEY_A, 0),
        ]
    )
    await trio.sleep(1)
    assert receive_all(receive_channel) == [
        KeyEvent.pressed(KeyCode.KEY_LEFTCTRL),
        KeyEvent.pressed(KeyCode.KEY_A),
        KeyEvent.released(KeyCode.KEY_A),
    ]


@pytest.mark.trio
async def test_overflow_drops_new_events(nursery: trio.Nursery, autojump_clock: trio.testing.MockClock, caplog: pytest.LogCaptureFixture):
    FakeEventDevice.present.add(SAMPLE_PATH)
    fakedevice = FakeEventDevice(SAMPLE_PATH)
    listener = KeyboardListener(SAMPLE_PATH)
    send_channel, receive_channel = open_event_channel(2)
    await nursery.start(listener.run, send_channel)
    await listener.connected.wait_value(True)

    with caplog.at_level(logging.WARNING, logger="systemchord.device.evdev_keyboard"):
        fakedevice.eventqueue.extend([key(KeyCode.KEY_A, 1), key(KeyCode.KEY_B, 1), key(KeyCode.KEY_C, 1), key(KeyCode.KEY_D, 1)])
        await trio.sleep(1)
    assert "Overflowed capacity" in caplog.text
    assert listener.dropped == 2
    # the oldest events survive whole; nothing of the dropped ones is seen
    assert receive_all(receive_channel) == [KeyEvent.pressed(KeyCode.KEY_A), KeyEvent.pressed(KeyCode.KEY_B)]

    # and the listener keeps going once there is room again
    fakedevice.eventqueue.append(key(KeyCode.KEY_A, 0))
    await trio.sleep(1)
    assert receive_all(receive_channel) == [KeyEvent.released(KeyCode.KEY_A)]


@pytest.mark.trio
async def test_disconnect_and_reconnect(nursery: trio.Nursery, autojump_clock: trio.testing.MockClock):
    fakedevice = FakeEventDevice(SAMPLE_PATH)
    listener = KeyboardListener(SAMPLE_PATH, retry=True)
    send_channel, receive_channel = open_event_channel(16)
    await nursery.start(listener.run, send_channel)

    # not plugged in yet: keep retrying, and no disconnect for a device we never had
    await trio.sleep(5)
    assert not listener.connected.value
    assert receive_all(receive_channel) == []

    FakeEventDevice.present.add(SAMPLE_PATH)
    await listener.connected.wait_value(True)
    fakedevice.eventqueue.append(key(KeyCode.KEY_LEFTMETA, 1))
    await trio.sleep(1)
    assert receive_all(receive_channel) == [KeyEvent.pressed(KeyCode.KEY_LEFTMETA)]

    fakedevice.unplug()
    await listener.connected.wait_value(False)
    await trio.sleep(5)
    assert receive_all(receive_channel) == [KeyboardDisconnect()]

    FakeEventDevice.present.add(SAMPLE_PATH)
    await listener.connected.wait_value(True)
    assert fakedevice.open_count == 2


@pytest.mark.trio
async def test_no_retry_closes_the_channel(autojump_clock: trio.testing.MockClock, caplog: pytest.LogCaptureFixture):
    listener = KeyboardListener(SAMPLE_PATH, retry=False)
    send_channel, receive_channel = open_event_channel(16)
    with caplog.at_level(logging.ERROR, logger="systemchord.device.evdev_keyboard"):
        await listener.run(send_channel)
    assert "An error occurred in the backend" in caplog.text
    with pytest.raises(trio.EndOfChannel):
        await receive_channel.receive()


@pytest.mark.trio
async def test_hangup_stops_the_listener(autojump_clock: trio.testing.MockClock, caplog: pytest.LogCaptureFixture):
    FakeEventDevice.present.add(SAMPLE_PATH)
    fakedevice = FakeEventDevice(SAMPLE_PATH)
    fakedevice.eventqueue.append(key(KeyCode.KEY_A, 1))
    listener = KeyboardListener(SAMPLE_PATH)
    send_channel, receive_channel = open_event_channel(16)
    await receive_channel.aclose()
    with caplog.at_level(logging.ERROR, logger="systemchord.device.evdev_keyboard"):
        with trio.fail_after(10):
            await listener.run(send_channel)
    assert "hung up" in caplog.text
