"""Anniversary lookbacks and dormant artist detection"""
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from strata_analytics.config import Settings, settings as default_settings
from strata_analytics.models.analytics import CapsuleTrack, DormantArtist, TimeCapsule
from strata_analytics.services.event_store import EventStore
from strata_analytics.utils.timeutil import day_bounds, to_iso, utc_now, years_before

logger = logging.getLogger(__name__)

CAPSULE_MAX_YEARS = 5

class LookbackFinder:
    """Looks back at what a user played on this date in earlier years, and who they stopped playing"""

    def __init__(self, store: EventStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or default_settings

    def time_capsule(self, user_id: str, today: Optional[date] = None) -> List[TimeCapsule]:
        """
        Tracks played on the same calendar date 1 to 5 years ago, aggregated per track.
        Years without plays are left out. On Feb 29 a non-leap target year uses Mar 1.
        """
        today = today or utc_now().date()
        capsules = []
        for years_ago in range(1, CAPSULE_MAX_YEARS + 1):
            day = years_before(today, years_ago)
            start, end = day_bounds(day)
            rows = self.store.track_plays_between(user_id, start, end)
            if not rows:
                continue
            tracks = [
                CapsuleTrack(
                    track_spotify_id=row['track_spotify_id'],
                    track_name=row['track_name'],
                    artist_name=row['artist_name'],
                    album_name=row['album_name'],
                    total_ms_played=int(row['total_ms_played'] or 0),
                    first_played_at=to_iso(row['first_played_at']),
                    play_count=row['play_count'],
                )
                for row in rows
            ]
            capsules.append(TimeCapsule(years_ago=years_ago, date=day.isoformat(), tracks=tracks))
        logger.info(f"Time capsule for user {user_id} on {today}: {len(capsules)} years with plays")
        return capsules

    def dormant_artists(self, user_id: str, now: Optional[datetime] = None) -> List[DormantArtist]:
        """
        Artists with at least DORMANT_MIN_MS_PLAYED of total listening and no play in the
        last DORMANT_INACTIVE_DAYS days, most listened first.
        """
        now = now or utc_now()
        cutoff = now - timedelta(days=self.settings.DORMANT_INACTIVE_DAYS)
        rows = self.store.dormant_artists(
            user_id,
            last_played_before=cutoff,
            min_ms_played=self.settings.DORMANT_MIN_MS_PLAYED,
            limit=self.settings.DORMANT_LIMIT
        )
        return [
            DormantArtist(
                artist_name=row['artist_name'],
                total_ms_played=int(row['total_ms_played'] or 0),
                play_count=row['play_count'],
                last_played=to_iso(row['last_played']),
            )
            for row in rows
        ]
