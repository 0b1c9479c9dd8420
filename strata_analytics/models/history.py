"""Streaming history import models"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from strata_analytics.models.base import ApiModel
from strata_analytics.utils.timeutil import parse_timestamp

class StreamingHistoryEntry(BaseModel):
    """
    One element of Spotify's Extended Streaming History export.
    Unknown fields (reason_start, platform, ...) are ignored.
    """
    model_config = ConfigDict(extra='ignore')

    ts: str = Field(strict=True)
    ms_played: float = Field(strict=True, ge=0)
    master_metadata_track_name: Optional[str] = None
    master_metadata_album_artist_name: Optional[str] = None
    master_metadata_album_album_name: Optional[str] = None
    spotify_track_uri: Optional[str] = None
    reason_start: Optional[str] = None
    reason_end: Optional[str] = None
    skipped: Optional[bool] = None
    platform: Optional[str] = None

    @field_validator('ts')
    @classmethod
    def ts_must_parse(cls, value: str) -> str:
        parse_timestamp(value)
        return value

StreamingHistory = TypeAdapter(List[StreamingHistoryEntry])

class SkipReasons(ApiModel):
    too_short: int = 0
    no_track_name: int = 0
    no_spotify_uri: int = 0
    no_artist_name: int = 0

    @property
    def total(self) -> int:
        return self.too_short + self.no_track_name + self.no_spotify_uri + self.no_artist_name

class ImportResult(ApiModel):
    """Outcome of one import call; never persisted"""
    total: int
    imported: int
    skipped: int
    duplicates: int
    skip_reasons: SkipReasons

class DateRange(ApiModel):
    from_: str = Field(alias='from')
    to: str

class ImportStatus(ApiModel):
    has_data: bool
    total_tracks: int
    date_range: Optional[DateRange] = None

class DeleteResult(ApiModel):
    deleted: int
