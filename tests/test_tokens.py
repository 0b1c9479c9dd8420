import time

import pytest
import requests

from strata_analytics.config import Settings
from strata_analytics.errors import LookupUnavailableError
from strata_analytics.models.db import User
from strata_analytics.services import tokens as tokens_module
from strata_analytics.services.tokens import TokenProvider

from conftest import USER_ID

SETTINGS = Settings(SPOTIFY_CLIENT_ID='client', SPOTIFY_CLIENT_SECRET='secret',
                    SPOTIFY_ACCOUNTS_URL='https://accounts.test/token', LOOKUP_TIMEOUT_SECONDS=7)

class FakeTokenResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload

@pytest.fixture
def user_with_refresh_token(session):
    session.add(User(id=USER_ID, spotify_id='spotify-user', refresh_token='refresh-me'))
    session.commit()

@pytest.fixture
def posts(monkeypatch):
    calls = []
    responses = []

    def post(url, data=None, auth=None, timeout=None):
        calls.append((url, data, auth, timeout))
        return responses.pop(0)

    monkeypatch.setattr(tokens_module.requests, 'post', post)
    return calls, responses

def test_valid_session_token_is_reused(store, posts):
    calls, _ = posts
    provider = TokenProvider(store, USER_ID, access_token='live', expires_at=time.time() + 3600, settings=SETTINGS)
    assert provider.get_access_token() == 'live'
    assert calls == []

def test_token_near_expiry_is_refreshed(store, user_with_refresh_token, posts):
    calls, responses = posts
    responses.append(FakeTokenResponse({'access_token': 'fresh', 'expires_in': 3600}))
    provider = TokenProvider(store, USER_ID, access_token='stale', expires_at=time.time() + 60, settings=SETTINGS)

    assert provider.get_access_token() == 'fresh'
    assert provider.access_token == 'fresh'
    url, data, auth, timeout = calls[0]
    assert url == 'https://accounts.test/token'
    assert timeout == 7
    assert data == {'grant_type': 'refresh_token', 'refresh_token': 'refresh-me'}
    assert auth == ('client', 'secret')
    # The new token is now reused
    assert provider.get_access_token() == 'fresh'
    assert len(calls) == 1

def test_missing_refresh_token(store, posts):
    with pytest.raises(LookupUnavailableError) as excinfo:
        TokenProvider(store, USER_ID, settings=SETTINGS).get_access_token()
    assert excinfo.value.message == "Could not obtain Spotify access token"

def test_missing_client_credentials(store, user_with_refresh_token, posts):
    with pytest.raises(LookupUnavailableError):
        TokenProvider(store, USER_ID, settings=Settings()).get_access_token()

def test_failed_refresh(store, user_with_refresh_token, posts):
    _, responses = posts
    responses.append(FakeTokenResponse({'error': 'invalid_grant'}, status_code=400))
    with pytest.raises(LookupUnavailableError):
        TokenProvider(store, USER_ID, settings=SETTINGS).get_access_token()

def test_refresh_without_access_token(store, user_with_refresh_token, posts):
    _, responses = posts
    responses.append(FakeTokenResponse({'token_type': 'Bearer'}))
    with pytest.raises(LookupUnavailableError):
        TokenProvider(store, USER_ID, settings=SETTINGS).get_access_token()
