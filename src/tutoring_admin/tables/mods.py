from __future__ import annotations

import re

from ..errors import InvalidModSlot

"""Mod-slot numbering.

1-10 are the ten slots of an A day, 11-20 the ten slots of a B day. They
display as "1A".."10A" and "1B".."10B".
"""

__all__ = [
    "MODS_PER_DAY",
    "A_DAY_MODS",
    "B_DAY_MODS",
    "stringify_mod",
    "parse_mod",
    "parse_mod_list",
    "is_a_day_mod",
]

MODS_PER_DAY = 10
A_DAY_MODS = range(1, MODS_PER_DAY + 1)
B_DAY_MODS = range(MODS_PER_DAY + 1, 2 * MODS_PER_DAY + 1)

_MOD_TEXT = re.compile(r"^\s*(\d{1,2})\s*([abAB])\s*$")


def stringify_mod(mod: int) -> str:
    if isinstance(mod, bool) or not isinstance(mod, int):
        raise InvalidModSlot(f"mod {mod!r} is not an integer")
    if mod in A_DAY_MODS:
        return f"{mod}A"
    if mod in B_DAY_MODS:
        return f"{mod - MODS_PER_DAY}B"
    raise InvalidModSlot(f"mod {mod} out of range 1-{2 * MODS_PER_DAY}")


def parse_mod(text: str) -> int:
    """Inverse of stringify_mod: "1B" -> 11."""
    m = _MOD_TEXT.match(text)
    if m is None:
        raise InvalidModSlot(f"cannot read mod {text!r}")
    number = int(m.group(1))
    if number not in A_DAY_MODS:
        raise InvalidModSlot(f"cannot read mod {text!r}")
    return number if m.group(2).lower() == "a" else number + MODS_PER_DAY


def parse_mod_list(text: str, half: str) -> list[int]:
    """Read a comma separated list of slot numbers ("1, 3") for one half ("A"/"B")."""
    result = []
    for part in text.split(","):
        part = part.strip()
        if part == "":
            continue
        result.append(parse_mod(part + half))
    return result


def is_a_day_mod(mod: int) -> bool:
    stringify_mod(mod)
    return mod in A_DAY_MODS
