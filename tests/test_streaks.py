from datetime import date, datetime, timedelta

import pytest

from strata_analytics.errors import InvalidYearError
from strata_analytics.streaks import SilenceDetector, find_silences, longest_streak

from conftest import USER_ID

def test_longest_streak():
    assert longest_streak([]) == 0
    assert longest_streak([date(2024, 3, 1)]) == 1
    days = [date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 4), date(2024, 3, 5), date(2024, 3, 6)]
    assert longest_streak(days) == 3

def test_streak_crosses_month_and_leap_day():
    days = [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]
    assert longest_streak(days) == 3

def test_find_silences_needs_three_days():
    active = [date(2024, 1, 1), date(2024, 1, 4), date(2024, 1, 6), date(2024, 1, 10)]
    silences = find_silences(active, date(2024, 1, 1), date(2024, 1, 10))
    assert [(s.start_date, s.end_date, s.days) for s in silences] == [
        ('2024-01-07', '2024-01-09', 3),
    ]

def test_find_silences_trailing_run():
    silences = find_silences([date(2024, 1, 1)], date(2024, 1, 1), date(2024, 1, 5))
    assert [(s.start_date, s.end_date, s.days) for s in silences] == [('2024-01-02', '2024-01-05', 4)]

def test_find_silences_whole_range_empty():
    silences = find_silences([], date(2024, 1, 1), date(2024, 1, 31))
    assert len(silences) == 1
    assert silences[0].days == 31

def test_silences_with_bookend_tracks(store, seed_plays):
    seed_plays(
        dict(played_at='2023-12-31T23:00:00', artist='Before Year', track='Old'),
        dict(played_at='2024-01-01T08:00:00', artist='A', track='One'),
        dict(played_at='2024-01-01T20:00:00', artist='B', track='Last Before'),
        dict(played_at='2024-01-05T09:00:00', artist='C', track='First After'),
        dict(played_at='2024-01-05T10:00:00', artist='D', track='Second After'),
        dict(played_at='2024-01-06T10:00:00', artist='E', track='Next'),
    )
    report = SilenceDetector(store).silences(USER_ID, 2024, now=datetime(2024, 1, 6, 12))

    assert report.total_silent_days == 3
    assert len(report.silences) == 1
    period = report.silences[0]
    assert (period.start_date, period.end_date, period.days) == ('2024-01-02', '2024-01-04', 3)
    assert period.last_track_before.track_name == 'Last Before'
    assert period.first_track_after.track_name == 'First After'

def test_silence_at_start_of_history_has_no_track_before(store, seed_plays):
    seed_plays(dict(played_at='2024-01-05T09:00:00', artist='C', track='First'))
    report = SilenceDetector(store).silences(USER_ID, 2024, now=datetime(2024, 1, 5, 12))

    period = report.silences[0]
    assert (period.start_date, period.end_date, period.days) == ('2024-01-01', '2024-01-04', 4)
    assert period.last_track_before is None
    assert period.first_track_after.track_name == 'First'
    assert period.to_json_dict()['lastTrackBefore'] is None

def test_current_year_scan_stops_today(store, seed_plays):
    seed_plays(dict(played_at='2024-03-01T09:00:00'))
    report = SilenceDetector(store).silences(USER_ID, 2024, now=datetime(2024, 3, 2, 12))
    # Jan 1 .. Feb 29 silent, Mar 1 active, Mar 2 alone is too short
    assert [(s.start_date, s.end_date, s.days) for s in report.silences] == [('2024-01-01', '2024-02-29', 60)]

def test_future_year_is_empty(store):
    report = SilenceDetector(store).silences(USER_ID, 2030, now=datetime(2024, 3, 2))
    assert report.to_json_dict() == {'silences': [], 'totalSilentDays': 0}

@pytest.mark.parametrize('year', ['abc', 1999, '2101'])
def test_invalid_year(store, year):
    with pytest.raises(InvalidYearError):
        SilenceDetector(store).silences(USER_ID, year)

def test_year_with_a_play_every_day_has_no_silences(store, seed_plays):
    first = datetime(2023, 1, 1, 9)
    seed_plays(*[dict(played_at=first + timedelta(days=offset)) for offset in range(365)])
    report = SilenceDetector(store).silences(USER_ID, 2023, now=datetime(2024, 3, 2))
    assert report.to_json_dict() == {'silences': [], 'totalSilentDays': 0}
