"""Month-over-month artist drift, obsession curves and long-range artist series"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from strata_analytics.models.analytics import (
    ArtistPlays,
    DriftReport,
    EraMonth,
    EraReport,
    MonthSnapshot,
    MonthStats,
    MosaicAlbum,
    MosaicMonth,
    ObsessionCurve,
    ObsessionMonth,
    RankingReport,
    WeeklyRanking,
    WeekRank,
)
from strata_analytics.services.event_store import EventStore
from strata_analytics.utils.timeutil import as_date, month_bounds, month_key, shift_month, utc_now

logger = logging.getLogger(__name__)

DRIFT_TOP_ARTISTS = 10
DRIFT_HIGHLIGHTS = 3
# A returning artist is rising when its play count grows by more than this factor
RISING_GROWTH = 1.5
MOSAIC_ALBUMS_PER_MONTH = 6
RANKING_TOP_ARTISTS = 10
ERA_TOP_ARTISTS = 15

def rising_artists(current: List[ArtistPlays], previous: List[ArtistPlays],
                   limit: int = DRIFT_HIGHLIGHTS) -> List[ArtistPlays]:
    """Current top artists that are new, or that grew by more than 1.5x; current rank order"""
    previous_counts = {artist.artist_name: artist.play_count for artist in previous}
    rising = [
        artist for artist in current
        if artist.artist_name not in previous_counts
        or artist.play_count > RISING_GROWTH * previous_counts[artist.artist_name]
    ]
    return rising[:limit]

def fading_artists(current: List[ArtistPlays], previous: List[ArtistPlays],
                   limit: int = DRIFT_HIGHLIGHTS) -> List[ArtistPlays]:
    """Previous top artists missing from the current top list; previous rank order"""
    current_names = {artist.artist_name for artist in current}
    return [artist for artist in previous if artist.artist_name not in current_names][:limit]


class DriftAnalyzer:
    """Compares listening across months and follows single artists through history"""

    def __init__(self, store: EventStore):
        self.store = store

    def _snapshot(self, user_id: str, year: int, month: int) -> MonthSnapshot:
        start, end = month_bounds(year, month)
        artists = [
            ArtistPlays(artist_name=name, play_count=count, ms_played=ms)
            for name, count, ms in self.store.top_artists(user_id, start=start, end=end, limit=DRIFT_TOP_ARTISTS)
        ]
        total_plays, total_ms, unique_artists, unique_tracks = self.store.period_stats(user_id, start, end)
        stats = MonthStats(
            total_plays=total_plays,
            total_ms=total_ms,
            unique_artists=unique_artists,
            unique_tracks=unique_tracks
        )
        return MonthSnapshot(artists=artists, stats=stats)

    def drift_report(self, user_id: str, now: Optional[datetime] = None) -> DriftReport:
        """
        Top 10 artists and totals for the current and previous calendar month,
        with up to 3 rising and 3 fading artists.

        Artists with equal play counts keep the order the database returned,
        which is not guaranteed to be stable between calls.
        """
        now = now or utc_now()
        prev_year, prev_month = shift_month(now.year, now.month, -1)

        current = self._snapshot(user_id, now.year, now.month)
        previous = self._snapshot(user_id, prev_year, prev_month)

        return DriftReport(
            current_month=month_key(now.year, now.month),
            prev_month=month_key(prev_year, prev_month),
            current=current,
            previous=previous,
            rising=rising_artists(current.artists, previous.artists),
            fading=fading_artists(current.artists, previous.artists)
        )

    def obsession_curve(self, user_id: str, artist: Optional[str]) -> ObsessionCurve:
        """Month-by-month plays for one artist over the whole history"""
        if not artist:
            return ObsessionCurve(months=[])
        months = [
            ObsessionMonth(month=month_key(year, month), play_count=count, ms_played=ms, track_count=tracks)
            for year, month, count, ms, tracks in self.store.artist_monthly(user_id, artist)
        ]
        return ObsessionCurve(artist=artist, months=months)

    def monthly_album_mosaic(self, user_id: str) -> List[MosaicMonth]:
        """Up to 6 most played albums per month, chronological"""
        months: Dict[str, List[MosaicAlbum]] = {}
        for year, month, album, artist, count, ms, track_id in self.store.album_monthly(user_id):
            albums = months.setdefault(month_key(year, month), [])
            albums.append(MosaicAlbum(album_name=album, artist_name=artist, play_count=count,
                                      ms_played=ms, track_spotify_id=track_id))

        mosaic = []
        for key, albums in months.items():
            # sorted() is stable, so equal counts keep the row order
            ranked = sorted(albums, key=lambda album: album.play_count, reverse=True)
            mosaic.append(MosaicMonth(month=key, albums=ranked[:MOSAIC_ALBUMS_PER_MONTH]))
        return mosaic

    def weekly_rankings(self, user_id: str) -> RankingReport:
        """
        Weekly rank of the 10 most played artists overall, for the bump chart.
        Weeks start on Monday; ranks are computed among all artists played that week.
        """
        weeks: Dict[str, Dict[str, int]] = {}
        totals: Dict[str, int] = {}
        for day, artist, count in self.store.daily_artist_counts(user_id):
            day = as_date(day)
            week = (day - timedelta(days=day.weekday())).isoformat()
            week_counts = weeks.setdefault(week, {})
            week_counts[artist] = week_counts.get(artist, 0) + count
            totals[artist] = totals.get(artist, 0) + count

        top = [name for name, _ in sorted(totals.items(), key=lambda item: item[1], reverse=True)[:RANKING_TOP_ARTISTS]]
        top_set = set(top)

        rankings = []
        for week in sorted(weeks):
            ranked = sorted(weeks[week].items(), key=lambda item: item[1], reverse=True)
            rank_map = {
                name: WeekRank(rank=position, plays=plays)
                for position, (name, plays) in enumerate(ranked, start=1)
                if name in top_set
            }
            rankings.append(WeeklyRanking(week=week, rankings=rank_map))
        return RankingReport(artists=top, weeks=rankings)

    def eras(self, user_id: str) -> EraReport:
        """Monthly listening time for the 15 artists with the most total listening time"""
        artists = [name for name, _ in self.store.top_artists_by_time(user_id, ERA_TOP_ARTISTS)]
        if not artists:
            return EraReport(artists=[], months=[])

        months: Dict[str, Dict[str, int]] = {}
        for year, month, artist, ms in self.store.artists_monthly_ms(user_id, artists):
            months.setdefault(month_key(year, month), {})[artist] = ms
        return EraReport(
            artists=artists,
            months=[EraMonth(month=key, values=values) for key, values in sorted(months.items())]
        )
