"""
Experience and level arithmetic.

Level 1 spans [0, 50) XP, level 2 spans [50, 200), level 3 spans [200, 450):
the XP needed to leave level L is L² × 50.
"""

import math

XP_PER_LEVEL_UNIT = 50

XP_REWARDS = {
    "CREATE_MEMORY": 10,
    "CREATE_REVIEW": 20,
}


def calculate_level(exp: int) -> int:
    """Return the level reached with ``exp`` experience points."""
    if exp < 0:
        return 1
    return math.floor(math.sqrt(exp / XP_PER_LEVEL_UNIT)) + 1


def xp_for_level(level: int) -> int:
    """XP at which ``level + 1`` begins."""
    return level ** 2 * XP_PER_LEVEL_UNIT


def progress_to_next_level(exp: int, level: int) -> int:
    """Percentage (0-100) of the way from the current level to the next."""
    current_floor = xp_for_level(level - 1)
    next_ceiling = xp_for_level(level)
    span = next_ceiling - current_floor
    if span <= 0:
        return 0
    percent = math.floor(100 * (exp - current_floor) / span)
    return max(0, min(100, percent))
