# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import enum
import typing

import msgspec

from ..commontypes import SystemChordError

if typing.TYPE_CHECKING:
    from .keycodes import KeyCode


class HardwareError(SystemChordError):
    pass


class DeviceDisconnectedError(HardwareError):
    pass


class DeviceGrabError(HardwareError):
    pass


class KeyboardDisconnect(msgspec.Struct, frozen=True):
    pass


class KeyPress(enum.IntEnum):
    RELEASED = 0
    PRESSED = 1
    REPEATED = 2


class KeyEvent(msgspec.Struct, frozen=True):
    key: KeyCode
    press: KeyPress

    @classmethod
    def pressed(cls, key: KeyCode):
        return cls(key=key, press=KeyPress.PRESSED)

    @classmethod
    def released(cls, key: KeyCode):
        return cls(key=key, press=KeyPress.RELEASED)


class RawEvent(msgspec.Struct, frozen=True):
    "One input_event record as read from the device, before it is interpreted."

    type: int
    code: int
    value: int


ChordEvent = KeyEvent | KeyboardDisconnect
