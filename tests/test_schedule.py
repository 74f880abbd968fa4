from datetime import datetime, timezone

import pytest

from preview import InvalidCronExpressionError, next_run_times, parse_cron


def test_next_runs_follow_the_schedule():
    start = datetime(2024, 1, 1, 8, 30, tzinfo=timezone.utc)  # a Monday

    runs = next_run_times("0 9 * * 1-5", count=3, start=start)

    assert [run.isoformat() for run in runs] == [
        "2024-01-01T09:00:00+00:00",
        "2024-01-02T09:00:00+00:00",
        "2024-01-03T09:00:00+00:00",
    ]


def test_runs_are_strictly_increasing():
    runs = next_run_times("*/15 * * * *", count=4, start=datetime(2024, 1, 1, tzinfo=timezone.utc))

    assert len(runs) == 4
    assert all(earlier < later for earlier, later in zip(runs, runs[1:]))


@pytest.mark.parametrize("expression", ["", "* * * *", "0 9 * * * *", "61 * * * *", "0 25 * * *"])
def test_invalid_expressions_are_rejected(expression):
    with pytest.raises(InvalidCronExpressionError):
        parse_cron(expression)


def test_crontab_weekday_numbers_start_on_sunday():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    sundays = next_run_times("0 12 * * 0", count=2, start=start)
    also_sundays = next_run_times("0 12 * * 7", count=1, start=start)

    assert [run.date().isoformat() for run in sundays] == ["2024-01-07", "2024-01-14"]
    assert also_sundays[0].date().isoformat() == "2024-01-07"


def test_weekday_names_pass_through():
    runs = next_run_times("30 6 * * sat", count=1, start=datetime(2024, 1, 1, tzinfo=timezone.utc))

    assert runs[0].isoformat() == "2024-01-06T06:30:00+00:00"


def test_restricted_day_fields_match_either():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    runs = next_run_times("0 0 13 * 5", count=3, start=start)

    assert [run.date().isoformat() for run in runs] == ["2024-01-05", "2024-01-12", "2024-01-13"]


def test_wildcard_day_of_month_keeps_weekday_only():
    runs = next_run_times("0 0 * * 5", count=2, start=datetime(2024, 1, 1, tzinfo=timezone.utc))

    assert [run.date().isoformat() for run in runs] == ["2024-01-05", "2024-01-12"]
