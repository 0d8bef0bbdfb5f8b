"""Scheduler Agent: decide immediate vs scheduled publish from best days / best hours."""
from datetime import datetime, timedelta, timezone

DAY_ORDER = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def suggest_schedule(now: datetime | None, best_days: list[str], best_hours: list[int]) -> str | None:
    """
    Pure logic. Returns None (publish now) when `now` falls inside a best day and a best hour,
    otherwise the ISO-8601 start of the next best slot.
    """
    now = now or datetime.now(timezone.utc)
    days = [d for d in DAY_ORDER if d in best_days] or DAY_ORDER
    hours = sorted({h for h in best_hours if 0 <= h < 24}) or [9]

    current_day = now.strftime("%A")
    if current_day in days and now.hour in hours:
        return None

    # Earliest best slot strictly after now, looking at most a week ahead
    for days_ahead in range(8):
        candidate_day = now + timedelta(days=days_ahead)
        if candidate_day.strftime("%A") not in days:
            continue
        for hour in hours:
            target = candidate_day.replace(hour=hour, minute=0, second=0, microsecond=0)
            if target > now:
                return target.isoformat()
    target = now.replace(hour=hours[0], minute=0, second=0, microsecond=0) + timedelta(days=1)
    return target.isoformat()
