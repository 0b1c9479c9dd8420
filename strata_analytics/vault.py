"""The user's library: paged track and artist listings, totals, and catalog-backed album art and genres"""
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from strata_analytics.errors import LookupUnavailableError, ValidationError
from strata_analytics.models.analytics import (
    LibraryArtist,
    LibraryStats,
    LibraryTrack,
    OpenDateRange,
    TopArtist,
    TopTrack,
)
from strata_analytics.responses import ok
from strata_analytics.services.catalog import CatalogClient
from strata_analytics.services.event_store import EventStore
from strata_analytics.services.tokens import TokenProvider
from strata_analytics.utils.timeutil import to_iso

logger = logging.getLogger(__name__)

MAX_METADATA_IDS = 50
GENRE_ARTIST_LIMIT = 100
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
LIBRARY_SORTS = ('plays', 'time', 'recent', 'name')

def _page(limit: Any, offset: Any) -> Tuple[int, int]:
    """
    Clamp paging parameters: limit to [0, 200], offset to >= 0.

    Raises:
        ValidationError: non-numeric limit or offset
    """
    try:
        limit = DEFAULT_PAGE_SIZE if limit in (None, "") else int(limit)
        offset = 0 if offset in (None, "") else int(offset)
    except (TypeError, ValueError):
        raise ValidationError("Invalid pagination parameters")
    return max(0, min(limit, MAX_PAGE_SIZE)), max(0, offset)

def _sort(sort: Optional[str], order: Optional[str]) -> Tuple[str, bool]:
    """Unknown sort keys fall back to play count; anything but "asc" sorts descending"""
    return (sort if sort in LIBRARY_SORTS else 'plays'), order != 'asc'

class Vault:
    """
    Browses one user's library and enriches it from the catalog.

    For catalog lookups a missing or unrefreshable access token is not an error for
    the caller: the result is empty data next to an "error" message.
    """

    def __init__(self, store: EventStore, tokens: Optional[TokenProvider] = None,
                 client_factory: Callable[[str], CatalogClient] = CatalogClient):
        self.store = store
        self.tokens = tokens
        self.client_factory = client_factory

    def _client(self) -> CatalogClient:
        if self.tokens is None:
            raise LookupUnavailableError()
        return self.client_factory(self.tokens.get_access_token())

    def track_metadata(self, track_ids: Optional[Iterable[str]]) -> Dict[str, Any]:
        """Album art and album name for up to 50 track ids"""
        ids = [track_id.strip() for track_id in (track_ids or []) if track_id and track_id.strip()]
        ids = ids[:MAX_METADATA_IDS]
        if not ids:
            return ok({})

        try:
            client = self._client()
        except LookupUnavailableError as e:
            return ok({}, error=e.message)
        return ok(client.get_track_metadata(ids))

    def genres(self, user_id: str) -> Dict[str, Any]:
        """Distinct genres of the 100 most played artists, sorted"""
        artists = [name for name, _, _ in self.store.top_artists(user_id, limit=GENRE_ARTIST_LIMIT)]
        if not artists:
            return ok([])

        try:
            client = self._client()
        except LookupUnavailableError as e:
            return ok([], error=e.message)

        matches = client.search_artists(artists)
        found = set()
        for match in matches.values():
            found.update(match.genres)
        logger.info(f"Collected {len(found)} genres from {len(matches)} of {len(artists)} artists for user {user_id}")
        return ok(sorted(found))

    # --- library browsing, no catalog access needed ---

    def tracks(self, user_id: str, sort: Optional[str] = 'plays', order: Optional[str] = 'desc',
               search: Optional[str] = None, artist: Optional[str] = None, album: Optional[str] = None,
               limit: Any = DEFAULT_PAGE_SIZE, offset: Any = 0) -> Dict[str, Any]:
        """
        Per-track play count, listening time and first/last play, one page at a time.
        `search` matches track or artist names case-insensitively; artist and album are exact.
        The envelope carries `total`, the number of distinct matching tracks.
        """
        limit, offset = _page(limit, offset)
        sort, descending = _sort(sort, order)
        rows, total = self.store.library_tracks(
            user_id, sort=sort, descending=descending, search=search, artist=artist, album=album,
            limit=limit, offset=offset
        )
        tracks = [
            LibraryTrack(
                track_spotify_id=row['track_spotify_id'],
                track_name=row['track_name'],
                artist_name=row['artist_name'],
                album_name=row['album_name'],
                play_count=row['play_count'],
                total_ms_played=int(row['total_ms_played'] or 0),
                first_played_at=to_iso(row['first_played_at']),
                last_played_at=to_iso(row['last_played_at']),
            )
            for row in rows
        ]
        return ok(tracks, total=total)

    def artists(self, user_id: str, sort: Optional[str] = 'plays', order: Optional[str] = 'desc',
                search: Optional[str] = None, limit: Any = DEFAULT_PAGE_SIZE, offset: Any = 0) -> Dict[str, Any]:
        """Per-artist plays, distinct tracks and listening time; same paging as tracks()"""
        limit, offset = _page(limit, offset)
        sort, descending = _sort(sort, order)
        rows, total = self.store.library_artists(
            user_id, sort=sort, descending=descending, search=search, limit=limit, offset=offset
        )
        artists = [
            LibraryArtist(
                artist_name=row['artist_name'],
                play_count=row['play_count'],
                unique_tracks=row['unique_tracks'],
                total_ms_played=int(row['total_ms_played'] or 0),
            )
            for row in rows
        ]
        return ok(artists, total=total)

    def albums(self, user_id: str, artist: Optional[str] = None) -> Dict[str, Any]:
        return ok(self.store.distinct_albums(user_id, artist=artist))

    def stats(self, user_id: str) -> Dict[str, Any]:
        """Library totals, first and last play, most played track and artist"""
        totals = self.store.library_totals(user_id)
        top_track = self.store.top_track(user_id)
        top_artists = self.store.top_artists(user_id, limit=1)
        stats = LibraryStats(
            total_tracks=totals['total_tracks'] or 0,
            total_artists=totals['total_artists'] or 0,
            total_plays=totals['total_plays'] or 0,
            total_ms_played=int(totals['total_ms_played'] or 0),
            date_range=OpenDateRange(from_=to_iso(totals['first_played_at']), to=to_iso(totals['last_played_at'])),
            top_track=TopTrack(track_name=top_track[0], artist_name=top_track[1], play_count=top_track[2])
            if top_track else None,
            top_artist=TopArtist(artist_name=top_artists[0][0], play_count=top_artists[0][1])
            if top_artists else None,
        )
        return ok(stats)
