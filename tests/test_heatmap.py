from datetime import date, datetime, timedelta, timezone

import pytest

from ebbinglish.analytics.heatmap import build_heatmap
from ebbinglish.analytics.metrics import heatmap_intensity

TODAY = date(2024, 6, 5)  # Wednesday


def _at(day, hour=10, tz=timezone.utc):
    return datetime(day.year, day.month, day.day, hour, tzinfo=tz)


def test_grid_starts_on_sunday_and_ends_today():
    weeks = build_heatmap([], days=7, today=TODAY)

    cells = [cell for week in weeks for cell in week]
    assert cells[0].date == date(2024, 5, 26)
    assert cells[0].date.weekday() == 6
    assert cells[-1].date == TODAY
    assert [len(week) for week in weeks] == [7, 4]
    assert all(cell.count == 0 and cell.intensity == 0 for cell in cells)


def test_counts_and_intensity_per_day():
    timestamps = (
        [_at(TODAY, 8), _at(TODAY, 9), datetime(2024, 6, 5, 23, 30)]  # naive read as UTC
        + [_at(date(2024, 6, 1))]
        + [_at(date(2024, 5, 27))] * 7
        + [_at(date(2024, 5, 28))] * 5
        + [_at(date(2024, 5, 20))]  # before the grid
        + [None]
    )
    weeks = build_heatmap(timestamps, days=7, today=TODAY)
    by_day = {cell.date: cell for week in weeks for cell in week}

    assert (by_day[TODAY].count, by_day[TODAY].intensity) == (3, 2)
    assert (by_day[date(2024, 6, 1)].count, by_day[date(2024, 6, 1)].intensity) == (1, 1)
    assert (by_day[date(2024, 5, 27)].count, by_day[date(2024, 5, 27)].intensity) == (7, 4)
    assert (by_day[date(2024, 5, 28)].count, by_day[date(2024, 5, 28)].intensity) == (5, 3)
    assert date(2024, 5, 20) not in by_day
    assert sum(cell.count for cell in by_day.values()) == 16


def test_aware_timestamps_bucket_by_utc_day():
    late_evening_new_york = datetime(2024, 6, 4, 22, 0, tzinfo=timezone(timedelta(hours=-4)))
    weeks = build_heatmap([late_evening_new_york], days=7, today=TODAY)
    by_day = {cell.date: cell.count for week in weeks for cell in week}
    assert by_day[TODAY] == 1
    assert by_day[date(2024, 6, 4)] == 0


def test_default_window_covers_trailing_days():
    weeks = build_heatmap([], today=TODAY)
    cells = [cell for week in weeks for cell in week]

    assert cells[-1].date == TODAY
    assert cells[0].date <= TODAY - timedelta(days=139)
    assert cells[0].date.weekday() == 6
    assert all(len(week) == 7 for week in weeks[:-1])


@pytest.mark.parametrize("count, intensity", [
    (0, 0), (1, 1), (2, 2), (3, 2), (4, 3), (6, 3), (7, 4), (50, 4),
])
def test_intensity_buckets(count, intensity):
    assert heatmap_intensity(count) == intensity
