"""Result models returned by the analytics services"""
from typing import Any, Dict, List, Optional

from pydantic import Field, model_serializer

from strata_analytics.models.base import ApiModel

# Calendar

class DailyCount(ApiModel):
    date: str
    count: int
    ms_played: int

class HourBucket(ApiModel):
    hour: int
    count: int = 0
    ms_played: int = 0

class WeekdayBucket(ApiModel):
    day: int
    day_name: str
    count: int = 0
    ms_played: int = 0

class MonthBucket(ApiModel):
    month: int
    month_name: str
    count: int = 0
    ms_played: int = 0

class MostActiveDay(ApiModel):
    date: str
    count: int

class YearSummary(ApiModel):
    total_plays: int = 0
    active_days: int = 0
    longest_streak: int = 0
    most_active_day: Optional[MostActiveDay] = None
    average_daily_plays: float = 0

class ArtistCount(ApiModel):
    artist_name: str
    total_plays: int

class DayTrack(ApiModel):
    track_name: str
    artist_name: str
    album_name: Optional[str] = None
    track_spotify_id: str
    ms_played: int
    played_at: str

class PeakHour(ApiModel):
    hour: int
    label: str

class BusiestDay(ApiModel):
    day: int
    day_name: str

class PatternOverview(ApiModel):
    peak_hour: PeakHour
    busiest_day: BusiestDay
    favorite_season: str
    average_daily_plays: int
    listener_type: str
    available_years: List[int]

# Silences

class TrackRef(ApiModel):
    track_name: str
    artist_name: str

class SilencePeriod(ApiModel):
    start_date: str
    end_date: str
    days: int
    last_track_before: Optional[TrackRef] = None
    first_track_after: Optional[TrackRef] = None

class SilenceReport(ApiModel):
    silences: List[SilencePeriod]
    total_silent_days: int

# Drift

class ArtistPlays(ApiModel):
    artist_name: str
    play_count: int
    ms_played: int

class MonthStats(ApiModel):
    total_plays: int = 0
    total_ms: int = 0
    unique_artists: int = 0
    unique_tracks: int = 0

class MonthSnapshot(ApiModel):
    artists: List[ArtistPlays]
    stats: MonthStats

class DriftReport(ApiModel):
    current_month: str
    prev_month: str
    current: MonthSnapshot
    previous: MonthSnapshot
    rising: List[ArtistPlays]
    fading: List[ArtistPlays]

class ObsessionMonth(ApiModel):
    month: str
    play_count: int
    ms_played: int
    track_count: int

class ObsessionCurve(ApiModel):
    """Without an artist the curve is just {"months": []}"""
    artist: Optional[str] = None
    months: List[ObsessionMonth]

    @model_serializer(mode='wrap')
    def _omit_missing_artist(self, handler) -> Dict[str, Any]:
        data = handler(self)
        if self.artist is None:
            data.pop('artist', None)
        return data

class MosaicAlbum(ApiModel):
    album_name: str
    artist_name: str
    play_count: int
    ms_played: int
    track_spotify_id: str

class MosaicMonth(ApiModel):
    month: str
    albums: List[MosaicAlbum]

class WeekRank(ApiModel):
    rank: int
    plays: int

class WeeklyRanking(ApiModel):
    week: str
    rankings: Dict[str, WeekRank]

class RankingReport(ApiModel):
    artists: List[str]
    weeks: List[WeeklyRanking]

class EraMonth(ApiModel):
    month: str
    values: Dict[str, int]

class EraReport(ApiModel):
    artists: List[str]
    months: List[EraMonth]

# Lookback

class CapsuleTrack(ApiModel):
    track_spotify_id: str
    track_name: str
    artist_name: str
    album_name: Optional[str] = None
    total_ms_played: int
    first_played_at: str
    play_count: int

class TimeCapsule(ApiModel):
    years_ago: int
    date: str
    tracks: List[CapsuleTrack]

class DormantArtist(ApiModel):
    artist_name: str
    total_ms_played: int
    play_count: int
    last_played: str

# Catalog

class TrackMetadata(ApiModel):
    album_art: str
    album_name: str

class ArtistMatch(ApiModel):
    id: str
    genres: List[str]

class TimePeriodArtists(ApiModel):
    label: str
    artists: List[ArtistPlays]

# Library browsing

class LibraryTrack(ApiModel):
    track_spotify_id: str
    track_name: str
    artist_name: str
    album_name: Optional[str] = None
    play_count: int
    total_ms_played: int
    first_played_at: Optional[str] = None
    last_played_at: Optional[str] = None

class LibraryArtist(ApiModel):
    artist_name: str
    play_count: int
    unique_tracks: int
    total_ms_played: int

class TopTrack(ApiModel):
    track_name: str
    artist_name: str
    play_count: int

class TopArtist(ApiModel):
    artist_name: str
    play_count: int

class OpenDateRange(ApiModel):
    from_: Optional[str] = Field(None, alias='from')
    to: Optional[str] = None

class LibraryStats(ApiModel):
    total_tracks: int = 0
    total_artists: int = 0
    total_plays: int = 0
    total_ms_played: int = 0
    date_range: OpenDateRange
    top_track: Optional[TopTrack] = None
    top_artist: Optional[TopArtist] = None
