from __future__ import annotations


def format_duration(minutes: int) -> str:
    """Render minutes as ``"2h 5m"``, ``"2h"`` or ``"5m"``."""
    hours, rest = divmod(int(minutes), 60)
    if hours > 0 and rest > 0:
        return f"{hours}h {rest}m"
    if hours > 0:
        return f"{hours}h"
    return f"{rest}m"


def ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)
