# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import logging
import pathlib
import typing

import trio
from trio_util import AsyncBool

from .deviceutil import EventDevice
from .hwtypes import ChordEvent, DeviceDisconnectedError, KeyboardDisconnect, KeyEvent, KeyPress, RawEvent
from .keycodes import EventType, KeyCode

logger = logging.getLogger(__name__)

EVENT_QUEUE_CAPACITY = 1024
RETRY_PERIOD = 1.0
POLL_INTERVAL = 1 / 60


class ReceiverHangup(Exception):
    "The dispatcher is no longer reading our events."


def open_event_channel(capacity: int = EVENT_QUEUE_CAPACITY):
    return trio.open_memory_channel[ChordEvent](capacity)


def translate_event(evt: RawEvent) -> typing.Optional[KeyEvent]:
    if evt.type != EventType.EV_KEY:
        return None
    key = KeyCode.from_code(evt.code)
    if key is None:
        logger.debug("Unsupported keycode %d", evt.code)
        return None
    match evt.value:
        case KeyPress.RELEASED:
            return KeyEvent.released(key)
        case KeyPress.PRESSED:
            return KeyEvent.pressed(key)
        case KeyPress.REPEATED:
            return None
        case other:
            logger.warning("Unexpected event value `%d` for key %d", other, evt.code)
            return None


class KeyboardListener:
    """Polls one evdev device and feeds key events into a bounded channel.

    The channel is lossy: when the dispatcher falls behind, new events are dropped
    rather than waiting for room.
    """

    connected: AsyncBool

    def __init__(self, device_path: pathlib.Path, retry: bool = True):
        self.device_path = device_path
        self.retry = retry
        self.connected = AsyncBool(False)
        self.dropped = 0
        self._opened = False

    def __repr__(self):
        return f"KeyboardListener({str(self.device_path)!r}, retry={self.retry!r})"

    def _enqueue(self, send_channel: trio.MemorySendChannel[ChordEvent], event: KeyEvent):
        try:
            send_channel.send_nowait(event)
        except trio.WouldBlock:
            self.dropped += 1
            logger.warning("Overflowed capacity, events may be dropped.")
        except (trio.BrokenResourceError, trio.ClosedResourceError) as exc:
            raise ReceiverHangup() from exc

    async def _poll(self, send_channel: trio.MemorySendChannel[ChordEvent]):
        # never returns normally; a lost device surfaces as FileNotFoundError or DeviceDisconnectedError.
        logger.debug("Opening device %s", self.device_path)
        with EventDevice(self.device_path) as device:
            if not device.has_code(EventType.EV_KEY, KeyCode.KEY_A):
                logger.warning("%s does not look like a keyboard", self.device_path)
            self._opened = True
            self.connected.value = True
            try:
                while True:
                    for evt in device.events():
                        key_event = translate_event(evt)
                        if key_event is not None:
                            self._enqueue(send_channel, key_event)
                    await trio.sleep(POLL_INTERVAL)
            finally:
                self.connected.value = False

    async def _send_disconnect(self, send_channel: trio.MemorySendChannel[ChordEvent]):
        try:
            await send_channel.send(KeyboardDisconnect())
        except (trio.BrokenResourceError, trio.ClosedResourceError) as exc:
            raise ReceiverHangup() from exc

    async def _run_retrying(self, send_channel: trio.MemorySendChannel[ChordEvent]):
        while True:
            self._opened = False
            try:
                await self._poll(send_channel)
            except (FileNotFoundError, DeviceDisconnectedError):
                pass
            if self._opened:
                logger.info("Keyboard device unavailable. Retrying periodically...")
                await self._send_disconnect(send_channel)
            logger.debug("Device %s not found, retrying in %s seconds", self.device_path, RETRY_PERIOD)
            await trio.sleep(RETRY_PERIOD)

    async def run(self, send_channel: trio.MemorySendChannel[ChordEvent], *, task_status=trio.TASK_STATUS_IGNORED):
        task_status.started()
        # closing the channel on the way out tells the dispatcher no more events are coming.
        async with send_channel:
            try:
                if self.retry:
                    await self._run_retrying(send_channel)
                else:
                    await self._poll(send_channel)
            except ReceiverHangup:
                logger.error("The receiving task hung up; stopping %r", self)
            except (FileNotFoundError, DeviceDisconnectedError) as exc:
                logger.error("An error occurred in the backend for %s: %s", self.device_path, exc)
            except OSError:
                logger.exception("An unrecoverable error occurred in the backend for %s", self.device_path)
