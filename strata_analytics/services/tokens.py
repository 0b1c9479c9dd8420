"""Access token lookup and refresh for catalog calls"""
import logging
import time
from typing import Optional

import requests

from strata_analytics.config import Settings, settings as default_settings
from strata_analytics.errors import LookupUnavailableError
from strata_analytics.services.event_store import EventStore

logger = logging.getLogger(__name__)

class TokenProvider:
    """
    Returns a usable access token for one user.

    The session token is used while it stays valid for longer than the expiry buffer;
    otherwise the stored refresh token is exchanged for a new one.
    """

    def __init__(self, store: EventStore, user_id: str, access_token: Optional[str] = None,
                 expires_at: Optional[float] = None, settings: Optional[Settings] = None):
        self.store = store
        self.user_id = user_id
        self.access_token = access_token
        self.expires_at = expires_at
        self.settings = settings or default_settings

    def _is_valid(self) -> bool:
        if not self.access_token or not self.expires_at:
            return False
        return time.time() + self.settings.TOKEN_EXPIRY_BUFFER_SECONDS < self.expires_at

    def get_access_token(self) -> str:
        if self._is_valid():
            return self.access_token
        return self.refresh()

    def refresh(self) -> str:
        """Exchange the stored refresh token for a new access token"""
        refresh_token = self.store.find_refresh_token(self.user_id)
        if not refresh_token:
            logger.warning(f"No refresh token stored for user {self.user_id}")
            raise LookupUnavailableError()
        if not (self.settings.SPOTIFY_CLIENT_ID and self.settings.SPOTIFY_CLIENT_SECRET):
            logger.warning("Spotify client credentials are not configured. Cannot refresh token.")
            raise LookupUnavailableError()

        lookup = self.settings.lookup_settings
        try:
            response = requests.post(
                lookup.accounts_url,
                data={'grant_type': 'refresh_token', 'refresh_token': refresh_token},
                auth=(self.settings.SPOTIFY_CLIENT_ID, self.settings.SPOTIFY_CLIENT_SECRET),
                timeout=lookup.timeout_seconds
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Token refresh failed for user {self.user_id}: {e}")
            raise LookupUnavailableError()

        access_token = payload.get('access_token') if isinstance(payload, dict) else None
        if not access_token:
            logger.warning(f"Token refresh response for user {self.user_id} had no access_token")
            raise LookupUnavailableError()

        self.access_token = access_token
        self.expires_at = time.time() + int(payload.get('expires_in', 3600))
        logger.info(f"Refreshed access token for user {self.user_id}")
        return access_token
