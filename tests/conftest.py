from datetime import datetime

import pytest

from strata_analytics.db import Database
from strata_analytics.models.db import PlayEvent
from strata_analytics.services.event_store import EventStore

USER_ID = 'user-1'
OTHER_USER_ID = 'user-2'

@pytest.fixture
def database():
    database = Database()
    database.init('sqlite:///:memory:')
    yield database
    database.dispose()

@pytest.fixture
def session(database):
    session = database.get_session()
    yield session
    session.close()

@pytest.fixture
def store(session):
    return EventStore(session)

def make_play(played_at, artist='Artist A', track='Song', album='Album', track_id=None,
              ms_played=180000, user_id=USER_ID):
    if isinstance(played_at, str):
        played_at = datetime.fromisoformat(played_at)
    return PlayEvent(
        user_id=user_id,
        track_spotify_id=track_id or f'{artist}-{track}'.replace(' ', ''),
        artist_name=artist,
        track_name=track,
        album_name=album,
        ms_played=ms_played,
        played_at=played_at,
        source='import',
    )

@pytest.fixture
def seed_plays(session):
    """Insert plays given as dicts of make_play keyword arguments"""
    def seed(*plays):
        session.add_all([make_play(**play) for play in plays])
        session.commit()
    return seed

def export_entry(ts='2024-06-15T10:00:00Z', ms_played=200000, track='Song', artist='Artist A',
                 album='Album', uri='spotify:track:abc123', **extra):
    entry = {
        'ts': ts,
        'ms_played': ms_played,
        'master_metadata_track_name': track,
        'master_metadata_album_artist_name': artist,
        'master_metadata_album_album_name': album,
        'spotify_track_uri': uri,
    }
    entry.update(extra)
    return entry
