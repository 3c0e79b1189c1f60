# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import logging
import types

from .chords import KeyPattern
from .commontypes import ConfigError, UnknownKeyError
from .device.keycodes import KeyCode

logger = logging.getLogger(__name__)

# Names that don't fall out of KeyCode member names. Every member is also
# reachable by its own name with the KEY_ prefix dropped, lowercased, and with
# underscores removed (KEY_VIDEO_NEXT -> "videonext").
_EXTRA_NAMES = {
    "leftbracket": KeyCode.KEY_LEFTBRACE,
    "rightbracket": KeyCode.KEY_RIGHTBRACE,
    "n1": KeyCode.KEY_1,
    "n2": KeyCode.KEY_2,
    "n3": KeyCode.KEY_3,
    "n4": KeyCode.KEY_4,
    "n5": KeyCode.KEY_5,
    "n6": KeyCode.KEY_6,
    "n7": KeyCode.KEY_7,
    "n8": KeyCode.KEY_8,
    "n9": KeyCode.KEY_9,
    "n0": KeyCode.KEY_0,
    "dash": KeyCode.KEY_MINUS,
    "plus": KeyCode.KEY_EQUAL,
    "tilde": KeyCode.KEY_GRAVE,
    "uparrow": KeyCode.KEY_UP,
    "downarrow": KeyCode.KEY_DOWN,
    "leftarrow": KeyCode.KEY_LEFT,
    "rightarrow": KeyCode.KEY_RIGHT,
    "calculator": KeyCode.KEY_CALC,
    "coffee": KeyCode.KEY_SCREENLOCK,
    "dashboard": KeyCode.KEY_ALL_APPLICATIONS,
}

# The keypad has three spellings: kp1, np1, numpad1.
_KEYPAD_SUFFIXES = (
    "0",
    "1",
    "2",
    "3",
    "4",
    "5",
    "6",
    "7",
    "8",
    "9",
    "enter",
    "dot",
    "minus",
    "plus",
    "asterisk",
    "slash",
    "jpcomma",
)


def _build_key_names() -> dict[str, KeyCode]:
    names = {code.display_name: code for code in KeyCode}
    names.update(_EXTRA_NAMES)
    for suffix in _KEYPAD_SUFFIXES:
        code = names[f"kp{suffix}"]
        names[f"np{suffix}"] = code
        names[f"numpad{suffix}"] = code
    return names


KEY_NAMES = types.MappingProxyType(_build_key_names())

KEY_GROUPS = types.MappingProxyType(
    {
        "ctrl": (KeyCode.KEY_LEFTCTRL, KeyCode.KEY_RIGHTCTRL),
        "alt": (KeyCode.KEY_LEFTALT, KeyCode.KEY_RIGHTALT),
        "shift": (KeyCode.KEY_LEFTSHIFT, KeyCode.KEY_RIGHTSHIFT),
        "meta": (KeyCode.KEY_LEFTMETA, KeyCode.KEY_RIGHTMETA),
    }
)


def key_name(code: KeyCode) -> str:
    return code.display_name


def parse_key_pattern(text: str) -> KeyPattern:
    """Parses a pattern like "ctrl" or "leftctrl|rightalt" into a KeyPattern.

    Names are case-insensitive. A group name such as "ctrl" stands for both the left
    and right variants.
    """
    accepted: list[KeyCode] = []
    for part in text.split("|"):
        name = part.strip().lower()
        if not name:
            raise ConfigError(f"Empty key name in pattern {text!r}")
        if name in KEY_GROUPS:
            codes = KEY_GROUPS[name]
        elif name in KEY_NAMES:
            codes = (KEY_NAMES[name],)
        else:
            raise UnknownKeyError(name)
        for code in codes:
            if code in accepted:
                logger.warning("Duplicate key: %s in %r", key_name(code), text)
            accepted.append(code)
    return KeyPattern(name=text, accepted=tuple(accepted))
