import pytest

from strata_analytics.errors import LookupUnavailableError, ValidationError
from strata_analytics.models.analytics import ArtistMatch, TrackMetadata
from strata_analytics.vault import Vault

from conftest import USER_ID

class FakeTokens:
    def __init__(self, token='token'):
        self.token = token

    def get_access_token(self):
        if self.token is None:
            raise LookupUnavailableError()
        return self.token

class FakeCatalog:
    def __init__(self, token):
        self.token = token
        self.requested = []

    def get_track_metadata(self, ids):
        self.requested.append(list(ids))
        return {track_id: TrackMetadata(album_art=f'art-{track_id}', album_name='Album') for track_id in ids}

    def search_artists(self, names):
        self.requested.append(list(names))
        genres = {'A': ['rock', 'indie'], 'B': ['indie', 'ambient']}
        return {name: ArtistMatch(id=name, genres=genres[name]) for name in names if name in genres}

@pytest.fixture
def catalogs():
    created = []

    def factory(token):
        catalog = FakeCatalog(token)
        created.append(catalog)
        return catalog
    return created, factory

def test_track_metadata(store, catalogs):
    created, factory = catalogs
    body = Vault(store, FakeTokens(), factory).track_metadata(['t1', 't2'])
    assert body == {'data': {
        't1': {'albumArt': 'art-t1', 'albumName': 'Album'},
        't2': {'albumArt': 'art-t2', 'albumName': 'Album'},
    }}

def test_track_metadata_caps_ids_at_50(store, catalogs):
    created, factory = catalogs
    Vault(store, FakeTokens(), factory).track_metadata([f't{i}' for i in range(80)])
    assert len(created[0].requested[0]) == 50

def test_track_metadata_without_ids_skips_catalog(store, catalogs):
    created, factory = catalogs
    assert Vault(store, FakeTokens(None), factory).track_metadata([]) == {'data': {}}
    assert created == []

def test_track_metadata_without_token(store, catalogs):
    _, factory = catalogs
    assert Vault(store, FakeTokens(None), factory).track_metadata(['t1']) == {
        'data': {}, 'error': "Could not obtain Spotify access token"
    }

def test_genres_sorted_and_distinct(store, seed_plays, catalogs):
    created, factory = catalogs
    seed_plays(
        dict(played_at='2024-01-01T10:00:00', artist='A'),
        dict(played_at='2024-01-01T11:00:00', artist='B'),
        dict(played_at='2024-01-01T12:00:00', artist='Unknown'),
    )
    assert Vault(store, FakeTokens(), factory).genres(USER_ID) == {'data': ['ambient', 'indie', 'rock']}
    assert sorted(created[0].requested[0]) == ['A', 'B', 'Unknown']

def test_genres_without_history(store, catalogs):
    _, factory = catalogs
    assert Vault(store, FakeTokens(None), factory).genres(USER_ID) == {'data': []}

def test_genres_without_token(store, seed_plays, catalogs):
    _, factory = catalogs
    seed_plays(dict(played_at='2024-01-01T10:00:00', artist='A'))
    assert Vault(store, FakeTokens(None), factory).genres(USER_ID) == {
        'data': [], 'error': "Could not obtain Spotify access token"
    }

@pytest.fixture
def library(store, seed_plays):
    seed_plays(
        dict(played_at='2024-01-01T10:00:00', artist='Alpha', track='Sunrise', album='Dawn', ms_played=1000),
        dict(played_at='2024-01-02T10:00:00', artist='Alpha', track='Sunrise', album='Dawn', ms_played=1000),
        dict(played_at='2024-01-03T10:00:00', artist='Alpha', track='Sunrise', album='Dawn', ms_played=1000),
        dict(played_at='2024-02-01T10:00:00', artist='Alpha', track='Noon', album='Day', ms_played=9000),
        dict(played_at='2024-03-01T10:00:00', artist='Beta', track='Moonlight', album='Night', ms_played=2000),
        dict(played_at='2024-03-02T10:00:00', artist='Beta', track='Moonlight', album='Night', ms_played=2000),
    )
    return Vault(store)

def test_tracks_default_sort_is_play_count(library):
    body = library.tracks(USER_ID)
    assert body['total'] == 3
    assert [t['trackName'] for t in body['data']] == ['Sunrise', 'Moonlight', 'Noon']
    assert body['data'][0] == {
        'trackSpotifyId': 'Alpha-Sunrise',
        'trackName': 'Sunrise',
        'artistName': 'Alpha',
        'albumName': 'Dawn',
        'playCount': 3,
        'totalMsPlayed': 3000,
        'firstPlayedAt': '2024-01-01T10:00:00.000Z',
        'lastPlayedAt': '2024-01-03T10:00:00.000Z',
    }

@pytest.mark.parametrize('sort, order, expected', [
    ('time', 'desc', ['Noon', 'Moonlight', 'Sunrise']),
    ('recent', 'desc', ['Moonlight', 'Noon', 'Sunrise']),
    ('name', 'asc', ['Moonlight', 'Noon', 'Sunrise']),
    ('plays', 'asc', ['Noon', 'Moonlight', 'Sunrise']),
    ('bogus', None, ['Sunrise', 'Moonlight', 'Noon']),
])
def test_tracks_sorting(library, sort, order, expected):
    assert [t['trackName'] for t in library.tracks(USER_ID, sort=sort, order=order)['data']] == expected

def test_tracks_search_and_filters(library):
    # Case-insensitive substring on the track name or the artist name
    assert [t['trackName'] for t in library.tracks(USER_ID, search='MOON')['data']] == ['Moonlight']
    body = library.tracks(USER_ID, search='alp')
    assert body['total'] == 2
    assert library.tracks(USER_ID, artist='alpha')['total'] == 0
    assert [t['trackName'] for t in library.tracks(USER_ID, album='Day')['data']] == ['Noon']

def test_tracks_paging(library):
    body = library.tracks(USER_ID, limit='1', offset='1')
    assert [t['trackName'] for t in body['data']] == ['Moonlight']
    assert body['total'] == 3
    assert len(library.tracks(USER_ID, limit=1000)['data']) == 3

def test_tracks_rejects_non_numeric_paging(library):
    with pytest.raises(ValidationError):
        library.tracks(USER_ID, limit='many')

def test_artists(library):
    body = library.artists(USER_ID)
    assert body == {
        'data': [
            {'artistName': 'Alpha', 'playCount': 4, 'uniqueTracks': 2, 'totalMsPlayed': 12000},
            {'artistName': 'Beta', 'playCount': 2, 'uniqueTracks': 1, 'totalMsPlayed': 4000},
        ],
        'total': 2,
    }
    assert [a['artistName'] for a in library.artists(USER_ID, sort='name', order='desc')['data']] == ['Beta', 'Alpha']
    assert library.artists(USER_ID, search='et')['total'] == 1

def test_albums_are_alphabetical(library, seed_plays):
    seed_plays(dict(played_at='2024-04-01T10:00:00', artist='Beta', album=None))
    assert library.albums(USER_ID) == {'data': ['Dawn', 'Day', 'Night']}
    assert library.albums(USER_ID, artist='Beta') == {'data': ['Night']}

def test_stats(library):
    assert library.stats(USER_ID) == {'data': {
        'totalTracks': 3,
        'totalArtists': 2,
        'totalPlays': 6,
        'totalMsPlayed': 16000,
        'dateRange': {'from': '2024-01-01T10:00:00.000Z', 'to': '2024-03-02T10:00:00.000Z'},
        'topTrack': {'trackName': 'Sunrise', 'artistName': 'Alpha', 'playCount': 3},
        'topArtist': {'artistName': 'Alpha', 'playCount': 4},
    }}

def test_stats_without_history(store):
    assert Vault(store).stats(USER_ID) == {'data': {
        'totalTracks': 0,
        'totalArtists': 0,
        'totalPlays': 0,
        'totalMsPlayed': 0,
        'dateRange': {'from': None, 'to': None},
        'topTrack': None,
        'topArtist': None,
    }}

def test_catalog_lookup_without_token_provider(store):
    assert Vault(store).track_metadata(['t1']) == {'data': {}, 'error': "Could not obtain Spotify access token"}
