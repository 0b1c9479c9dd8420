"""Activity streaks and silence (inactivity) periods"""
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Union

from strata_analytics.errors import parse_year
from strata_analytics.models.analytics import SilencePeriod, SilenceReport, TrackRef
from strata_analytics.models.db import PlayEvent
from strata_analytics.services.event_store import EventStore
from strata_analytics.utils.timeutil import as_date, day_bounds, iter_days, utc_now, year_bounds

logger = logging.getLogger(__name__)

MIN_SILENCE_DAYS = 3

def longest_streak(active_dates: Sequence[date]) -> int:
    """
    Longest run of consecutive days in a sorted sequence of distinct dates.
    0 for no dates, otherwise at least 1.
    """
    if not active_dates:
        return 0
    longest = current = 1
    for previous, day in zip(active_dates, active_dates[1:]):
        if (day - previous).days == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest

def find_silences(active_dates: Iterable[date], first_day: date, last_day: date,
                  min_days: int = MIN_SILENCE_DAYS) -> List[SilencePeriod]:
    """
    Runs of at least min_days inactive days within [first_day, last_day],
    without bookend tracks.
    """
    active = set(active_dates)
    silences = []
    run_start: Optional[date] = None
    run_days = 0

    for day in iter_days(first_day, last_day):
        if day not in active:
            if run_start is None:
                run_start = day
            run_days += 1
            continue
        if run_start is not None and run_days >= min_days:
            silences.append(_period(run_start, day - timedelta(days=1), run_days))
        run_start = None
        run_days = 0

    # Trailing silence up to the end of the range
    if run_start is not None and run_days >= min_days:
        silences.append(_period(run_start, last_day, run_days))
    return silences

def _period(start: date, end: date, days: int) -> SilencePeriod:
    return SilencePeriod(start_date=start.isoformat(), end_date=end.isoformat(), days=days)

def _track_ref(play: Optional[PlayEvent]) -> Optional[TrackRef]:
    if play is None:
        return None
    return TrackRef(track_name=play.track_name, artist_name=play.artist_name)


class SilenceDetector:
    """Finds quiet stretches in a year and the plays on either side of them"""

    def __init__(self, store: EventStore):
        self.store = store

    def active_dates(self, user_id: str, year: int) -> List[date]:
        start, end = year_bounds(year)
        return [as_date(day) for day, _, _ in self.store.daily_counts(user_id, start, end)]

    def silences(self, user_id: str, year: Union[int, str, None] = None, now: Optional[datetime] = None) -> SilenceReport:
        """
        Silence periods of 3+ days in `year` (default: current year).
        The scan covers Jan 1 through min(today, Dec 31).

        Raises:
            InvalidYearError: year is non-numeric or outside [2000, 2100]
        """
        today = (now or utc_now()).date()
        year = parse_year(year, today.year)
        first_day = date(year, 1, 1)
        last_day = min(today, date(year, 12, 31))
        if last_day < first_day:
            return SilenceReport(silences=[], total_silent_days=0)

        periods = find_silences(self.active_dates(user_id, year), first_day, last_day)

        # One before/after pair per period, periods in order
        for period in periods:
            silence_start, _ = day_bounds(date.fromisoformat(period.start_date))
            _, after_end = day_bounds(date.fromisoformat(period.end_date))
            before, after = self._bookends(user_id, silence_start, after_end)
            period.last_track_before = _track_ref(before)
            period.first_track_after = _track_ref(after)

        total = sum(period.days for period in periods)
        logger.info(f"Found {len(periods)} silences ({total} days) for user {user_id} in {year}")
        return SilenceReport(silences=periods, total_silent_days=total)

    def _bookends(self, user_id: str, silence_start: datetime, after_end: datetime):
        """Last play before the silence and first play from the day after it"""
        return (self.store.last_play_before(user_id, silence_start),
                self.store.first_play_from(user_id, after_end))
