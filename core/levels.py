"""Level table lookup.

The table in config.LEVELS is static. Levels past the last entry are
extrapolated geometrically with LEVEL_XP_MULTIPLIER, so existing profiles
keep the same level display as long as the table and the multiplier do.
"""

import math

from .config import LEVELS, LEVEL_XP_MULTIPLIER


def level_for_xp(xp: int) -> dict:
    """Return the level entry for an XP total, with progress toward the next level.

    Scans from the highest requirement down; an XP total exactly on a
    threshold resolves to the higher level.
    """
    for i in range(len(LEVELS) - 1, -1, -1):
        entry = LEVELS[i]
        if xp >= entry['xp_required']:
            next_entry = LEVELS[i + 1] if i + 1 < len(LEVELS) else None
            if next_entry:
                xp_for_next = next_entry['xp_required']
                progress = (xp - entry['xp_required']) / (xp_for_next - entry['xp_required'])
            else:
                xp_for_next = entry['xp_required'] * 2
                progress = 1.0
            return {
                **entry,
                'xp_to_next': xp_for_next - xp,
                'xp_for_next_level': xp_for_next,
                'progress': progress
            }

    # Unreachable while LEVELS[0] requires 0 XP
    return {
        **LEVELS[0],
        'xp_to_next': LEVELS[1]['xp_required'],
        'xp_for_next_level': LEVELS[1]['xp_required'],
        'progress': 0
    }


def xp_for_level(level: int) -> int:
    """XP required to reach the level after `level`."""
    for entry in LEVELS:
        if entry['level'] == level + 1:
            return entry['xp_required']

    last = LEVELS[-1]
    return math.floor(last['xp_required'] * LEVEL_XP_MULTIPLIER ** (level - last['level']))


def get_level_name(level: int) -> str:
    for entry in LEVELS:
        if entry['level'] == level:
            return entry['name']
    return LEVELS[-1]['name']
