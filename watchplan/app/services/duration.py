from __future__ import annotations

import math
import re

# Not anchored at the end: a malformed tail still yields whichever components matched.
DURATION_PATTERN = re.compile(
    r"PT(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?"
)


def parse_duration_minutes(encoding: object) -> int:
    """Convert a `PT#H#M#S` duration into whole minutes, rounding seconds up.

    Never raises; anything that does not look like a duration counts as 0.
    """
    if not isinstance(encoding, str):
        return 0
    matched = DURATION_PATTERN.search(encoding)
    if matched is None:
        return 0

    hours = int(matched.group("hours") or 0)
    minutes = int(matched.group("minutes") or 0)
    seconds = int(matched.group("seconds") or 0)
    return hours * 60 + minutes + math.ceil(seconds / 60)
