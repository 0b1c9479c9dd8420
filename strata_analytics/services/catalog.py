"""Spotify catalog lookups (album art, artist genres)"""
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests

from strata_analytics.config import LookupSettings, settings
from strata_analytics.models.analytics import ArtistMatch, TrackMetadata
from strata_analytics.utils.pool import BoundedPool

logger = logging.getLogger(__name__)

# Seconds to wait on a 429 without a Retry-After header
DEFAULT_RETRY_AFTER = 1
PREFERRED_IMAGE_WIDTH = 300

def _get_album_art(images_list: Optional[List[Dict]]) -> str:
    """Prefer the 300px image, else the first one, else empty."""
    if not images_list or not isinstance(images_list, list):
        return ""
    for img in images_list:
        if isinstance(img, dict) and img.get('width') == PREFERRED_IMAGE_WIDTH and img.get('url'):
            return img['url']
    first = images_list[0]
    if isinstance(first, dict):
        return first.get('url') or ""
    return ""

def _retry_after_seconds(response: requests.Response) -> float:
    try:
        return max(0.0, float(response.headers.get('Retry-After', DEFAULT_RETRY_AFTER)))
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER


class CatalogClient:
    """Handles Spotify Web API lookups with a bounded pool and one-shot 429 retry"""

    def __init__(self, token: str, lookup: Optional[LookupSettings] = None,
                 session_factory: Callable[[], requests.Session] = requests.Session):
        """
        Initialize with Spotify access token
        """
        if not token:
            raise ValueError("Spotify token cannot be empty")
        self.lookup = lookup or settings.lookup_settings
        self.base_url = self.lookup.api_url.rstrip('/')
        self.token = token
        self.session_factory = session_factory
        self._local = threading.local()
        self.pool = BoundedPool(self.lookup.concurrency)

    def _session(self) -> requests.Session:
        """One HTTP session per pool thread, created on first use"""
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self.session_factory()
            session.headers.update({
                'Authorization': f'Bearer {self.token}',
                'Accept': 'application/json'
            })
            self._local.session = session
        return session

    def _make_request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict]:
        """
        GET an endpoint. A 429 is retried exactly once after Retry-After seconds.
        Returns None for any other non-2xx response or a second 429.
        """
        url = f'{self.base_url}/{endpoint}'
        for attempt in (1, 2):
            response = self._session().get(url, params=params, timeout=self.lookup.timeout_seconds)
            if response.status_code == 429:
                if attempt == 2:
                    logger.warning(f"Rate limit hit again (429) for {url}. Giving up on this item.")
                    return None
                retry_after = _retry_after_seconds(response)
                logger.warning(f"Rate limit hit (429) for {url}. Retrying after {retry_after} seconds...")
                time.sleep(retry_after)
                continue
            if not response.ok:
                logger.warning(f"Spotify API error ({response.status_code}) for {url}")
                return None
            try:
                data = response.json()
            except ValueError:
                logger.error(f"Failed to decode JSON response from {url}. Response text: {response.text[:200]}")
                return None
            return data if isinstance(data, dict) else None
        return None

    def fetch_track(self, track_id: str) -> Optional[TrackMetadata]:
        data = self._make_request(f'tracks/{track_id}')
        if not data or not isinstance(data.get('album'), dict):
            return None
        album = data['album']
        return TrackMetadata(album_art=_get_album_art(album.get('images')), album_name=album.get('name') or "")

    def get_track_metadata(self, track_ids: Iterable[str]) -> Dict[str, TrackMetadata]:
        """Album art and album name per track id; failed ids are simply missing"""
        ids = [track_id for track_id in track_ids if track_id]
        logger.info(f"Fetching metadata for {len(ids)} tracks (pool size {self.pool.size})")
        return self.pool.map_settled(self.fetch_track, ids)

    def search_artist(self, artist_name: str) -> Optional[ArtistMatch]:
        """Best search match for an artist name, or None"""
        data = self._make_request('search', params={'q': f'artist:{artist_name}', 'type': 'artist', 'limit': 1})
        if not data:
            return None
        items = (data.get('artists') or {}).get('items') or []
        if not items or not isinstance(items[0], dict) or not items[0].get('id'):
            return None
        return ArtistMatch(id=items[0]['id'], genres=list(items[0].get('genres') or []))

    def search_artists(self, artist_names: Iterable[str]) -> Dict[str, ArtistMatch]:
        return self.pool.map_settled(self.search_artist, artist_names)
