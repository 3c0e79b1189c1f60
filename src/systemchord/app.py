# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import argparse
import logging
import os
import pathlib
import sys

import trio

from .commontypes import BackendExhaustedError, ConfigError
from .device.evdev_keyboard import KeyboardListener, open_event_channel
from .dispatch import ChordDispatcher
from .executor import ActionExecutor
from .settings import APPLICATION, Backend, ExecutorSettings, Settings

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "SYSTEMCHORD_LOG"


def make_listener(executor_settings: ExecutorSettings):
    match executor_settings.backend:
        case Backend.EVDEV:
            return KeyboardListener(executor_settings.device, retry=executor_settings.retry)
        case _:
            raise NotImplementedError(f"Don't know how to start backend {executor_settings.backend}.")


async def run_chord_service(executor_settings: ExecutorSettings, action_nursery: trio.Nursery):
    logger.info("Starting chord service: %s", executor_settings)
    listener = make_listener(executor_settings)
    dispatcher = ChordDispatcher(
        executor_settings.chords,
        executor_settings.chord_options,
        ActionExecutor(action_nursery, executor_settings.shell),
        name=str(executor_settings),
    )
    send_channel, receive_channel = open_event_channel()
    try:
        async with trio.open_nursery() as nursery:
            nursery.start_soon(listener.run, send_channel)
            nursery.start_soon(dispatcher.run, receive_channel)
    except* BackendExhaustedError:
        logger.error("Chord service %s stopped", executor_settings)


async def run_executors(settings: Settings):
    if not settings.executors:
        logger.warning("No executors configured in %s; nothing to do.", settings._path)
        return
    # actions get their own nursery so a stopped chord service never cancels them.
    async with trio.open_nursery() as action_nursery:
        async with trio.open_nursery() as nursery:
            for executor_settings in settings.executors:
                nursery.start_soon(run_chord_service, executor_settings, action_nursery)
        logger.info("All chord services have stopped")
        # stops watching children still running; it does not kill them.
        action_nursery.cancel_scope.cancel()


def log_level():
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        return logging.INFO
    return level


parser = argparse.ArgumentParser(prog=APPLICATION)
parser.add_argument("-c", "--config", type=pathlib.Path, help="Set an alternate config file. Default is OS-dependent.")


def main(argv=sys.argv):
    """
    Args:
        argv (list): List of arguments

    Returns:
        int: A return code
    """
    logging.basicConfig(level=log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    parsed = parser.parse_args(argv[1:])
    logger.info("Starting %s", APPLICATION)
    try:
        settings = Settings.load(parsed.config)
    except ConfigError as exc:
        print(f"{APPLICATION}: {exc}", file=sys.stderr)
        return 1
    trio.run(run_executors, settings)
    return 0

