# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
class SystemChordError(Exception):
    pass


class ConfigError(SystemChordError):
    pass


class UnknownKeyError(ConfigError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown key: {key}")


class BackendExhaustedError(SystemChordError):
    pass


class NotInContextError(Exception):
    def __init__(self):
        return super().__init__("Must be inside an appropriate context manager")
