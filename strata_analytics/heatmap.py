"""Fandom heatmap and hour/day/month listening distributions"""
import logging
import math
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from strata_analytics.errors import parse_year
from strata_analytics.labels import (
    DAY_NAMES,
    HOUR_LABELS,
    LISTENER_TYPES,
    MONTH_NAMES,
    MONTH_SEASONS,
    SEASONS,
    TIME_PERIODS,
)
from strata_analytics.models.analytics import (
    ArtistCount,
    ArtistPlays,
    BusiestDay,
    DailyCount,
    DayTrack,
    HourBucket,
    MonthBucket,
    MostActiveDay,
    PatternOverview,
    PeakHour,
    TimePeriodArtists,
    WeekdayBucket,
    YearSummary,
)
from strata_analytics.services.event_store import EventStore
from strata_analytics.streaks import longest_streak
from strata_analytics.utils.timeutil import (
    as_date,
    day_bounds,
    days_in_year,
    to_iso,
    utc_now,
    year_bounds,
)

logger = logging.getLogger(__name__)

YearParam = Union[int, str, None]
HEATMAP_ARTIST_LIMIT = 50
TIME_PERIOD_ARTIST_LIMIT = 5

def round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale

def _optional_year(year: YearParam) -> Optional[int]:
    """Year filter for the distribution endpoints: absent means all years"""
    if year is None or year == "":
        return None
    return parse_year(year, default_year=0)


class CalendarAggregator:
    """Buckets a user's plays into calendar days and fixed hour/weekday/month domains"""

    def __init__(self, store: EventStore):
        self.store = store

    # --- heatmap ---

    def daily_heatmap(self, user_id: str, year: YearParam = None, artist: Optional[str] = None,
                      now: Optional[datetime] = None) -> List[DailyCount]:
        """
        One entry per UTC date with at least one play in the year. Sparse: empty days
        are left for the caller to fill.

        Raises:
            InvalidYearError: year outside [2000, 2100]
        """
        year = parse_year(year, (now or utc_now()).year)
        start, end = year_bounds(year)
        rows = self.store.daily_counts(user_id, start, end, artist=artist)
        return [DailyCount(date=as_date(day).isoformat(), count=count, ms_played=ms) for day, count, ms in rows]

    def heatmap_artists(self, user_id: str, limit: int = HEATMAP_ARTIST_LIMIT) -> List[ArtistCount]:
        """Most played artists over the whole history, for the artist filter"""
        return [
            ArtistCount(artist_name=artist, total_plays=count)
            for artist, count, _ in self.store.top_artists(user_id, limit=limit)
        ]

    def summary(self, user_id: str, year: YearParam = None, artist: Optional[str] = None,
                now: Optional[datetime] = None) -> YearSummary:
        """
        Totals, active days, longest streak, most active day and average daily plays.

        The average divides by days elapsed so far for the current year,
        otherwise by the length of the year.
        """
        today = (now or utc_now()).date()
        year = parse_year(year, today.year)
        start, end = year_bounds(year)
        daily = self.store.daily_counts(user_id, start, end, artist=artist)
        if not daily:
            return YearSummary()

        dates = [as_date(day) for day, _, _ in daily]
        total_plays = sum(count for _, count, _ in daily)

        # First day with the highest count wins
        best_index = 0
        for index, (_, count, _) in enumerate(daily):
            if count > daily[best_index][1]:
                best_index = index

        if today.year == year:
            days_in_period = (today - date(year, 1, 1)).days + 1
        else:
            days_in_period = days_in_year(year)

        return YearSummary(
            total_plays=total_plays,
            active_days=len(daily),
            longest_streak=longest_streak(dates),
            most_active_day=MostActiveDay(date=dates[best_index].isoformat(), count=daily[best_index][1]),
            average_daily_plays=round_half_up(total_plays / days_in_period, 1)
        )

    def day_tracks(self, user_id: str, day: Union[date, str, None]) -> List[DayTrack]:
        """Every play on one UTC date, chronological"""
        if not day:
            return []
        start, end = day_bounds(as_date(day))
        return [
            DayTrack(
                track_name=play.track_name,
                artist_name=play.artist_name,
                album_name=play.album_name,
                track_spotify_id=play.track_spotify_id,
                ms_played=play.ms_played,
                played_at=to_iso(play.played_at),
            )
            for play in self.store.plays_between(user_id, start, end)
        ]

    # --- zero-filled distributions ---

    def _buckets(self, user_id: str, part: str, year: YearParam, artist: Optional[str],
                 album: Optional[str]) -> Dict[int, tuple]:
        rows = self.store.bucket_counts(user_id, part, year=_optional_year(year), artist=artist, album=album)
        return {bucket: (count, ms) for bucket, count, ms in rows}

    def hourly(self, user_id: str, year: YearParam = None, artist: Optional[str] = None,
               album: Optional[str] = None) -> List[HourBucket]:
        """Always 24 entries, index = UTC hour"""
        found = self._buckets(user_id, 'hour', year, artist, album)
        return [HourBucket(hour=hour, count=found.get(hour, (0, 0))[0], ms_played=found.get(hour, (0, 0))[1])
                for hour in range(24)]

    def weekly(self, user_id: str, year: YearParam = None, artist: Optional[str] = None,
               album: Optional[str] = None) -> List[WeekdayBucket]:
        """Always 7 entries, 0 = Sunday"""
        found = self._buckets(user_id, 'dow', year, artist, album)
        return [
            WeekdayBucket(day=day, day_name=DAY_NAMES[day], count=found.get(day, (0, 0))[0],
                          ms_played=found.get(day, (0, 0))[1])
            for day in range(7)
        ]

    def monthly(self, user_id: str, year: YearParam = None, artist: Optional[str] = None,
                album: Optional[str] = None) -> List[MonthBucket]:
        """Always 12 entries; index i holds month i + 1"""
        found = self._buckets(user_id, 'month', year, artist, album)
        return [
            MonthBucket(month=index + 1, month_name=MONTH_NAMES[index], count=found.get(index + 1, (0, 0))[0],
                        ms_played=found.get(index + 1, (0, 0))[1])
            for index in range(12)
        ]

    # --- composite insights ---

    def overview(self, user_id: str, year: YearParam = None, artist: Optional[str] = None,
                 album: Optional[str] = None) -> PatternOverview:
        """Peak hour, busiest weekday, favorite season, listener type and the years on record"""
        year_filter = _optional_year(year)
        filters = dict(year=year_filter, artist=artist, album=album)

        hour_rows = self.store.bucket_counts(user_id, 'hour', by_count=True, limit=1, **filters)
        peak_hour = hour_rows[0][0] if hour_rows else 0

        day_rows = self.store.bucket_counts(user_id, 'dow', by_count=True, limit=1, **filters)
        busiest = day_rows[0][0] if day_rows else 0

        season_counts = {season: 0 for season in SEASONS}
        for month, count, _ in self.store.bucket_counts(user_id, 'month', **filters):
            season_counts[MONTH_SEASONS[month - 1]] += count
        favorite_season = max(SEASONS, key=lambda season: season_counts[season])

        total, first_played, last_played = self.store.play_totals(
            user_id, year=year_filter, artist=artist, album=album, ignore_case=True
        )
        average = 0
        if first_played and last_played:
            span_days = max(1, math.ceil((last_played - first_played).total_seconds() / 86400))
            average = int(round_half_up(total / span_days))

        return PatternOverview(
            peak_hour=PeakHour(hour=peak_hour, label=HOUR_LABELS[peak_hour]),
            busiest_day=BusiestDay(day=busiest, day_name=DAY_NAMES[busiest]),
            favorite_season=favorite_season,
            average_daily_plays=average,
            listener_type=LISTENER_TYPES[peak_hour],
            available_years=self.store.distinct_years(user_id)
        )

    def time_of_day_artists(self, user_id: str, year: YearParam = None) -> Dict[str, TimePeriodArtists]:
        """Top 5 artists for each named listening window"""
        year_filter = _optional_year(year)
        result = {}
        for name, label, hours in TIME_PERIODS:
            artists = self.store.top_artists(user_id, year=year_filter, hours=hours, limit=TIME_PERIOD_ARTIST_LIMIT)
            result[name] = TimePeriodArtists(
                label=label,
                artists=[ArtistPlays(artist_name=a, play_count=c, ms_played=ms) for a, c, ms in artists]
            )
        return result

    def artists(self, user_id: str, year: YearParam = None) -> List[str]:
        return [artist for artist, _, _ in self.store.top_artists(user_id, year=_optional_year(year))]

    def albums(self, user_id: str, year: YearParam = None, artist: Optional[str] = None) -> List[str]:
        return self.store.album_names(user_id, year=_optional_year(year), artist=artist)
