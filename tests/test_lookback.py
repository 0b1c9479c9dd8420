from datetime import date, datetime

import pytest

from strata_analytics.config import Settings
from strata_analytics.lookback import LookbackFinder
from strata_analytics.utils.timeutil import years_before

from conftest import USER_ID, OTHER_USER_ID

HOUR = 3600000

@pytest.fixture
def finder(store):
    return LookbackFinder(store, Settings())

def test_years_before_leap_day():
    assert years_before(date(2024, 2, 29), 1) == date(2023, 3, 1)
    assert years_before(date(2024, 2, 29), 4) == date(2020, 2, 29)
    assert years_before(date(2024, 6, 15), 2) == date(2022, 6, 15)

def test_time_capsule_groups_tracks_and_omits_empty_years(finder, seed_plays):
    seed_plays(
        dict(played_at='2023-06-15T08:00:00', track='Morning', artist='A', ms_played=1000),
        dict(played_at='2023-06-15T20:00:00', track='Morning', artist='A', ms_played=2000),
        dict(played_at='2023-06-15T21:00:00', track='Evening', artist='B', ms_played=5000),
        dict(played_at='2023-06-16T00:00:00', track='Next day', artist='C'),
        dict(played_at='2021-06-15T12:00:00', track='Older', artist='D', ms_played=4000),
        dict(played_at='2023-06-15T09:00:00', track='Not mine', user_id=OTHER_USER_ID),
    )
    capsules = finder.time_capsule(USER_ID, today=date(2024, 6, 15))

    assert [(c.years_ago, c.date) for c in capsules] == [(1, '2023-06-15'), (3, '2021-06-15')]
    one_year = capsules[0].to_json_dict()['tracks']
    assert one_year[0] == {
        'trackSpotifyId': 'A-Morning',
        'trackName': 'Morning',
        'artistName': 'A',
        'albumName': 'Album',
        'totalMsPlayed': 3000,
        'firstPlayedAt': '2023-06-15T08:00:00.000Z',
        'playCount': 2,
    }
    assert [track['trackName'] for track in one_year] == ['Morning', 'Evening']

def test_time_capsule_without_history(finder):
    assert finder.time_capsule(USER_ID, today=date(2024, 6, 15)) == []

def test_time_capsule_ignores_six_years_ago(finder, seed_plays):
    seed_plays(dict(played_at='2018-06-15T12:00:00'))
    assert finder.time_capsule(USER_ID, today=date(2024, 6, 15)) == []

def test_dormant_artists(finder, seed_plays):
    now = datetime(2024, 6, 1)
    seed_plays(
        # Heavy listening, last played more than 180 days ago
        dict(played_at='2023-01-01T10:00:00', artist='Gone', ms_played=HOUR),
        dict(played_at='2023-02-01T10:00:00', artist='Gone', ms_played=HOUR),
        dict(played_at='2023-03-01T10:00:00', artist='Also Gone', ms_played=HOUR),
        # Too little listening
        dict(played_at='2023-01-01T10:00:00', artist='Brief', ms_played=HOUR - 1),
        # Heavy but still active
        dict(played_at='2023-01-01T10:00:00', artist='Active', ms_played=2 * HOUR),
        dict(played_at='2024-05-01T10:00:00', artist='Active', ms_played=1000),
    )
    artists = finder.dormant_artists(USER_ID, now=now)

    assert [a.to_json_dict() for a in artists] == [
        {'artistName': 'Gone', 'totalMsPlayed': 2 * HOUR, 'playCount': 2, 'lastPlayed': '2023-02-01T10:00:00.000Z'},
        {'artistName': 'Also Gone', 'totalMsPlayed': HOUR, 'playCount': 1, 'lastPlayed': '2023-03-01T10:00:00.000Z'},
    ]

def test_dormant_artists_respects_limit(store, seed_plays):
    seed_plays(*[dict(played_at='2020-01-01T10:00:00', artist=f'Artist {i}', ms_played=HOUR + i) for i in range(5)])
    finder = LookbackFinder(store, Settings(DORMANT_LIMIT=2))
    artists = finder.dormant_artists(USER_ID, now=datetime(2024, 1, 1))
    assert [a.artist_name for a in artists] == ['Artist 4', 'Artist 3']

def test_no_dormant_artists(finder):
    assert finder.dormant_artists(USER_ID, now=datetime(2024, 1, 1)) == []
