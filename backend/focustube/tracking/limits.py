from typing import Optional


def is_limit_reached(
    accumulated_seconds: int,
    limit_minutes: int,
    limit_enabled: bool,
    snooze_until: Optional[float],
    now: float,
) -> bool:
    """
    Whether the daily watch budget is used up.

    A disabled limit is never reached. An active snooze (now < snooze_until)
    always wins, however far over the limit the user is. Otherwise reaching
    the limit exactly counts as reached.
    """
    if not limit_enabled:
        return False
    if snooze_until is not None and now < snooze_until:
        return False
    return accumulated_seconds >= limit_minutes * 60


def snooze_deadline(now: float, minutes: float) -> float:
    return now + minutes * 60
