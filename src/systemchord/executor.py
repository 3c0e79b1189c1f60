# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import collections.abc
import logging
import subprocess
import typing

import trio

from .chords import Action, CommandAction, ShellAction

logger = logging.getLogger(__name__)


def action_to_command(action: Action, shell: typing.Optional[collections.abc.Sequence[str]]) -> typing.Optional[list[str]]:
    match action:
        case ShellAction(command=command):
            if shell is None:
                logger.error("Cannot execute shell command without shell configured")
                return None
            if not shell:
                logger.error("Configured shell is empty")
                return None
            return [*shell, command]
        case CommandAction(argv=argv):
            if not argv:
                logger.error("Action command is empty")
                return None
            return list(argv)
        case _:
            raise NotImplementedError(f"Don't know how to execute {type(action)}.")


class ActionExecutor:
    """Runs chord actions as detached child processes.

    execute() never waits for the child. Each child gets its own task in the
    executor's nursery, which waits on it only to log failures.
    """

    def __init__(self, nursery: trio.Nursery, shell: typing.Optional[collections.abc.Sequence[str]] = None):
        self.nursery = nursery
        self.shell = tuple(shell) if shell is not None else None

    def execute(self, action: Action):
        command = action_to_command(action, self.shell)
        if command is None:
            return
        self.nursery.start_soon(self._run, command)

    async def _run(self, command: list[str]):
        logger.debug("Running %r", command)
        try:
            process = await trio.lowlevel.open_process(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError:
            logger.error("Failed to spawn child command: %r", command, exc_info=True)
            return
        # if this wait is cancelled the child is left running; we only stop watching it.
        try:
            returncode = await process.wait()
        except OSError:
            logger.error("Failed to wait for child process %r", command, exc_info=True)
            return
        if returncode != 0:
            logger.debug("Command %r exited with status %d", command, returncode)
