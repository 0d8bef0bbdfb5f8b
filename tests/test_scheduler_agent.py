from datetime import datetime, timezone

from postflow.agents.scheduler_agent import suggest_schedule

BEST_DAYS = ["Tuesday", "Wednesday", "Thursday"]


def test_inside_best_slot_publishes_now():
    tuesday_nine = datetime(2030, 1, 1, 9, 15, tzinfo=timezone.utc)  # a Tuesday
    assert suggest_schedule(tuesday_nine, BEST_DAYS, [9, 13]) is None


def test_later_hour_same_day():
    tuesday_ten = datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert suggest_schedule(tuesday_ten, BEST_DAYS, [9, 13]) == "2030-01-01T13:00:00+00:00"


def test_weekend_rolls_to_next_best_day():
    saturday = datetime(2030, 1, 5, 11, 0, tzinfo=timezone.utc)
    assert suggest_schedule(saturday, BEST_DAYS, [9, 13]) == "2030-01-08T09:00:00+00:00"


def test_after_last_slot_of_last_best_day():
    thursday_late = datetime(2030, 1, 3, 20, 0, tzinfo=timezone.utc)
    assert suggest_schedule(thursday_late, BEST_DAYS, [9, 13]) == "2030-01-08T09:00:00+00:00"
