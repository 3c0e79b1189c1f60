# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later

# Keyboard event stages
# device level:
# stage 0: OS-specific; watch an evdev keyboard device and issue a lossy stream of key presses, releases and disconnects

# chord level:
# stage 1: track which keys are held
# stage 2: match held keys against the configured chords, in priority order
# stage 3: run the matched actions, detached
