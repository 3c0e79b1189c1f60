# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import collections.abc
import contextlib
import errno
import fcntl
import os
import pathlib

from ..commontypes import NotInContextError
from .hwtypes import DeviceDisconnectedError, DeviceGrabError, RawEvent
from .keycodes import EventType, KeyCode


def raw_event_from_libevdev(evt) -> RawEvent:
    return RawEvent(type=evt.type.value, code=evt.code.value, value=evt.value)


class EventDevice(contextlib.AbstractContextManager):
    def __init__(self, device_path: str | pathlib.Path, grab=False):
        self.grab_device = grab
        if not isinstance(device_path, pathlib.Path):
            device_path = pathlib.Path(device_path)
        if not device_path.is_absolute():
            raise ValueError("Device path must be absolute")
        self.device_path = device_path
        self._f = None
        self._d = None

    def open(self):
        import libevdev

        # FileNotFoundError is left for the caller; it means the device is not plugged in (yet).
        self._f = self.device_path.open("rb", buffering=0)
        fcntl.fcntl(self._f, fcntl.F_SETFL, os.O_NONBLOCK)
        try:
            self._d = libevdev.Device(self._f)
            if self.grab_device:
                self._d.grab()
        except libevdev.device.DeviceGrabError as exc:
            self.close()
            raise DeviceGrabError from exc
        except OSError as exc:
            self.close()
            if exc.errno == errno.ENODEV:
                raise DeviceDisconnectedError() from exc
            raise

    def close(self):
        # closing the file also releases any grab.
        if self._f is not None:
            self._f.close()
        self._d = None
        self._f = None

    def __enter__(self):
        self.open()
        return self

    def events(self) -> collections.abc.Iterator[RawEvent]:
        import libevdev

        if self._d is None:
            raise NotInContextError()

        resyncing = False
        events = self._d.events()
        while True:
            if resyncing:
                # Key state is rebuilt from subsequent press/release events, so
                # discard everything up to and including the next SYN_REPORT.
                synced = False
                while not synced:
                    try:
                        evt = next(events)
                    except StopIteration:
                        return
                    if evt.code == libevdev.EV_SYN.SYN_REPORT:
                        synced = True
                resyncing = False
            else:
                try:
                    evt = next(events)
                except StopIteration:
                    return
                except libevdev.EventsDroppedException:
                    resyncing = True
                except OSError as exc:
                    if exc.errno == errno.ENODEV:
                        raise DeviceDisconnectedError() from exc
                    raise
                else:
                    yield raw_event_from_libevdev(evt)

    def has_code(self, type: EventType, code: KeyCode):
        import libevdev

        if self._d is None:
            raise NotInContextError()

        return self._d.has(libevdev.evbit(type.value, code.value))

    def __exit__(self, _exc_type, _exc_value, _traceback):
        self.close()
        return False  # to reraise exceptions if needed
