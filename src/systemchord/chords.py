# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import collections.abc
import logging
import typing

import msgspec

from .device.hwtypes import ChordEvent, KeyboardDisconnect, KeyEvent, KeyPress
from .device.keycodes import KeyCode

logger = logging.getLogger(__name__)


class KeyPattern(msgspec.Struct, frozen=True):
    """A named matcher for one position in a chord.

    Any of the accepted keys satisfies the pattern, so the "ctrl" pattern accepts
    either control key.
    """

    name: str
    accepted: tuple[KeyCode, ...]

    def matches(self, key: KeyCode) -> bool:
        return key in self.accepted

    def matches_any(self, held: collections.abc.Container[KeyCode]) -> bool:
        return any(key in held for key in self.accepted)


class ChordOptions(msgspec.Struct, frozen=True):
    passthrough: bool = True
    exclusive: bool = False


class ChordOptionsOverride(msgspec.Struct, frozen=True):
    passthrough: typing.Optional[bool] = None
    exclusive: typing.Optional[bool] = None

    def resolve(self, defaults: ChordOptions) -> ChordOptions:
        return ChordOptions(
            passthrough=defaults.passthrough if self.passthrough is None else self.passthrough,
            exclusive=defaults.exclusive if self.exclusive is None else self.exclusive,
        )


class ShellAction(msgspec.Struct, frozen=True):
    "A command line to be run through the configured shell."

    command: str


class CommandAction(msgspec.Struct, frozen=True):
    "A literal argv, run directly."

    argv: tuple[str, ...]


Action = ShellAction | CommandAction


class ChordDefinition(msgspec.Struct, frozen=True):
    sequence: tuple[KeyPattern, ...]
    action: Action
    options: typing.Optional[ChordOptionsOverride] = None

    def resolve_options(self, defaults: ChordOptions) -> ChordOptions:
        if self.options is None:
            return defaults
        return self.options.resolve(defaults)

    def covers(self, key: KeyCode) -> bool:
        return any(pattern.matches(key) for pattern in self.sequence)

    def matches(self, held: collections.abc.Collection[KeyCode], defaults: ChordOptions) -> bool:
        if not all(pattern.matches_any(held) for pattern in self.sequence):
            return False
        if not self.resolve_options(defaults).exclusive:
            return True
        # exclusive: nothing may be held that the chord doesn't account for
        return all(self.covers(key) for key in held)


class KeyState:
    """The set of keys currently held on one input source."""

    def __init__(self):
        self._held: set[KeyCode] = set()

    def apply(self, event: ChordEvent):
        match event:
            case KeyEvent(key=key, press=KeyPress.PRESSED):
                if key in self._held:
                    logger.warning("Duplicate press of %s, were events dropped?", key.display_name)
                self._held.add(key)
            case KeyEvent(key=key, press=KeyPress.RELEASED):
                if key not in self._held:
                    logger.warning("Duplicate release of %s, were events dropped?", key.display_name)
                self._held.discard(key)
            case KeyEvent():
                # repeats don't change what is held
                pass
            case KeyboardDisconnect():
                logger.debug("Device disconnected, clearing held keys.")
                self._held.clear()
            case _:
                raise NotImplementedError(f"Don't know how to apply {type(event)}.")

    @property
    def held(self) -> frozenset[KeyCode]:
        return frozenset(self._held)

    def __contains__(self, key):
        return key in self._held

    def __iter__(self):
        return iter(self._held)

    def __len__(self):
        return len(self._held)

    def __repr__(self):
        return f"KeyState({sorted(k.display_name for k in self._held)!r})"


def match_chords(
    held: collections.abc.Collection[KeyCode],
    chords: collections.abc.Iterable[ChordDefinition],
    options: ChordOptions,
) -> list[Action]:
    """Returns the actions to fire for the held keys, in priority order.

    Chords are checked top to bottom. Every matching chord contributes its action; a
    matching chord without passthrough is the last one considered.
    """
    actions = []
    for chord in chords:
        if not chord.matches(held, options):
            continue
        actions.append(chord.action)
        if not chord.resolve_options(options).passthrough:
            break
    return actions
