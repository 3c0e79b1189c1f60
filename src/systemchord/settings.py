# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import dataclasses
import enum
import logging
import pathlib
import typing

import cattrs
import msgspec
import platformdirs
import tomli
from cattrs.v import format_exception, transform_error

from .chords import Action, ChordDefinition, ChordOptions, ChordOptionsOverride, CommandAction, KeyPattern, ShellAction
from .commontypes import ConfigError
from .keynames import parse_key_pattern

logger = logging.getLogger(__name__)

APPLICATION = "systemchord"
CONFIG_FILENAME = f"{APPLICATION}.toml"


def default_config_path() -> pathlib.Path:
    return platformdirs.user_config_path(APPLICATION) / CONFIG_FILENAME


@enum.unique
class Backend(enum.Enum):
    EVDEV = "evdev"


def structure_key_pattern(v: typing.Any, _) -> KeyPattern:
    if not isinstance(v, str):
        raise ValueError(f"Key pattern must be a string, got {v!r}")
    return parse_key_pattern(v)


def structure_action(v: typing.Any) -> Action:
    if isinstance(v, str):
        return ShellAction(command=v)
    if isinstance(v, list) and all(isinstance(arg, str) for arg in v):
        return CommandAction(argv=tuple(v))
    raise ValueError(f"Action must be a string or a list of strings, got {v!r}")


def structure_msgspec(v: typing.Any, typ: type):
    try:
        return msgspec.convert(v, typ)
    except msgspec.ValidationError as exc:
        raise ValueError(str(exc)) from exc


def structure_chord(v: typing.Any, _) -> ChordDefinition:
    if not isinstance(v, dict):
        raise ValueError(f"Chord must be a table, got {v!r}")
    if "sequence" not in v:
        raise ConfigError("Chord is missing its sequence")
    if "action" not in v:
        raise ConfigError("Chord is missing its action")
    if not isinstance(v["sequence"], list):
        raise ConfigError(f"Chord sequence must be a list of key patterns, got {v['sequence']!r}")
    sequence = tuple(settings_converter.structure(v["sequence"], list[KeyPattern]))
    if not sequence:
        raise ConfigError("Chord sequence must not be empty")
    return ChordDefinition(
        sequence=sequence,
        action=structure_action(v["action"]),
        options=settings_converter.structure(v.get("options"), typing.Optional[ChordOptionsOverride]),
    )


settings_converter = cattrs.Converter()
settings_converter.register_structure_hook(pathlib.Path, lambda v, _: pathlib.Path(v))
settings_converter.register_structure_hook(KeyPattern, structure_key_pattern)
settings_converter.register_structure_hook(ChordOptions, structure_msgspec)
settings_converter.register_structure_hook(ChordOptionsOverride, structure_msgspec)
settings_converter.register_structure_hook(ChordDefinition, structure_chord)
# a bare string is not a list of strings
settings_converter.register_structure_hook_func(lambda t: t == list[str], structure_msgspec)


def format_config_exception(exc: BaseException, typ) -> str:
    if isinstance(exc, ConfigError):
        return str(exc)
    return format_exception(exc, typ)


@dataclasses.dataclass(kw_only=True)
class ExecutorSettings:
    backend: Backend
    device: pathlib.Path
    chords: list[ChordDefinition]
    retry: bool = True
    shell: typing.Optional[list[str]] = None
    chord_options: ChordOptions = dataclasses.field(default_factory=ChordOptions)

    def __str__(self):
        match self.backend:
            case Backend.EVDEV:
                return f"evdev (on {self.device})"


@dataclasses.dataclass(kw_only=True)
class Settings:
    _path: pathlib.Path
    executors: list[ExecutorSettings] = dataclasses.field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict, src: pathlib.Path):
        raw = dict(raw)
        raw["_path"] = src
        try:
            return settings_converter.structure(raw, cls)
        except cattrs.BaseValidationError as exc:
            problems = transform_error(exc, path="config", format_exception=format_config_exception)
            raise ConfigError(f"Invalid config {src}: " + "; ".join(problems)) from exc

    @classmethod
    def load(cls, src: typing.Optional[pathlib.Path] = None):
        defaulted = src is None
        if src is None:
            logger.debug("Using default config")
            src = default_config_path()
        logger.info("Loading config from %s", src)

        if not src.exists():
            if not defaulted:
                logger.error("Cannot read user-provided config.")
                raise ConfigError(f"Config file {src} does not exist")
            logger.debug("Creating default directories")
            src.parent.mkdir(parents=True, exist_ok=True)
            logger.warning("Default config does not exist. Create your custom config at `%s`.", src)
            return cls(_path=src)

        try:
            with src.open("rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"Could not parse config {src}: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Could not read config {src}: {exc}") from exc
        return cls.from_dict(raw, src)

    @classmethod
    def for_test(cls):
        return cls.from_dict(
            {
                "executors": [
                    {
                        "backend": "evdev",
                        "device": "/dev/input/by-id/test-kbd",
                        "shell": ["/bin/sh", "-c"],
                        "chords": [
                            {"sequence": ["ctrl", "alt", "t"], "action": "xterm"},
                            {"sequence": ["meta", "enter"], "action": ["notify-send", "hello"], "options": {"exclusive": True}},
                        ],
                    }
                ]
            },
            pathlib.Path("test.systemchord.toml"),
        )


settings_converter.register_structure_hook(Settings, cattrs.gen.make_dict_structure_fn(Settings, settings_converter))
