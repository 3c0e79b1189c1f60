# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import collections.abc
import logging
import typing

import trio

from .chords import Action, ChordDefinition, ChordOptions, KeyState, match_chords
from .commontypes import BackendExhaustedError
from .device.hwtypes import ChordEvent

logger = logging.getLogger(__name__)


class Executor(typing.Protocol):
    def execute(self, action: Action) -> None: ...


class ChordDispatcher:
    """Consumes the events of one input source and fires the chords they complete."""

    state: KeyState

    def __init__(
        self,
        chords: collections.abc.Sequence[ChordDefinition],
        chord_options: ChordOptions,
        executor: Executor,
        name: str = "keyboard",
    ):
        self.chords = tuple(chords)
        self.chord_options = chord_options
        self.executor = executor
        self.name = name
        self.state = KeyState()

    def handle_event(self, event: ChordEvent) -> list[Action]:
        self.state.apply(event)
        actions = match_chords(self.state, self.chords, self.chord_options)
        for action in actions:
            logger.debug("Chord matched on %s, running %r", self.name, action)
            self.executor.execute(action)
        return actions

    async def run(self, receive_channel: trio.MemoryReceiveChannel[ChordEvent], *, task_status=trio.TASK_STATUS_IGNORED):
        task_status.started()
        async with receive_channel:
            try:
                async for event in receive_channel:
                    self.handle_event(event)
            except trio.BrokenResourceError as exc:
                logger.error("Event source for %s failed", self.name)
                raise BackendExhaustedError(f"Event source for {self.name} failed") from exc
        logger.error("Event source for %s is exhausted; no further events will be processed.", self.name)
        raise BackendExhaustedError(f"Event source for {self.name} is exhausted")
