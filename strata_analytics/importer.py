"""Streaming history import: validate, filter, deduplicate, batch insert"""
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from strata_analytics.config import Settings, settings as default_settings
from strata_analytics.errors import ValidationError
from strata_analytics.models.history import (
    DateRange,
    DeleteResult,
    ImportResult,
    ImportStatus,
    SkipReasons,
    StreamingHistory,
    StreamingHistoryEntry,
)
from strata_analytics.services.event_store import EventStore
from strata_analytics.utils.timeutil import parse_timestamp, to_iso

logger = logging.getLogger(__name__)

TRACK_URI_PATTERN = re.compile(r'^[A-Za-z0-9]+:track:([A-Za-z0-9]+)$')
IMPORT_SOURCE = 'import'

def extract_track_id(uri: Optional[str]) -> Optional[str]:
    """spotify:track:6rqhF... -> 6rqhF...; None for anything that is not a track URI"""
    if not uri:
        return None
    match = TRACK_URI_PATTERN.match(uri)
    return match.group(1) if match else None

def classify_entry(entry: StreamingHistoryEntry, min_ms_played: int) -> Tuple[Optional[str], Optional[str]]:
    """
    Return (skip reason, track id). Checks run in a fixed order and the first
    failing one wins, so skip reason counts are reproducible.
    """
    if entry.ms_played < min_ms_played:
        return 'too_short', None
    if not entry.master_metadata_track_name:
        return 'no_track_name', None
    track_id = extract_track_id(entry.spotify_track_uri)
    if not track_id:
        return 'no_spotify_uri', None
    if not entry.master_metadata_album_artist_name:
        return 'no_artist_name', None
    return None, track_id


class HistoryImporter:
    """Imports Extended Streaming History exports for one store"""

    def __init__(self, store: EventStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or default_settings

    def parse_body(self, body: Any) -> List[StreamingHistoryEntry]:
        """Validate raw bytes/str or already-decoded JSON against the export schema"""
        if isinstance(body, (bytes, bytearray, str)):
            try:
                body = json.loads(body)
            except (json.JSONDecodeError, UnicodeDecodeError):
                raise ValidationError("Invalid JSON body")
        try:
            return StreamingHistory.validate_python(body)
        except PydanticValidationError as e:
            logger.warning(f"Rejected import payload: {e.error_count()} validation errors")
            raise ValidationError()

    def import_history(self, user_id: str, raw_entries: Any) -> ImportResult:
        """
        Import raw export entries for a user.

        Raises:
            ValidationError: payload is not an array of export entries
        """
        entries = self.parse_body(raw_entries)
        reasons: Dict[str, int] = {key: 0 for key in SkipReasons.model_fields}

        # Phase 1: filter and transform
        candidates: List[Dict[str, Any]] = []
        for entry in entries:
            reason, track_id = classify_entry(entry, self.settings.MIN_MS_PLAYED)
            if reason:
                reasons[reason] += 1
                continue
            candidates.append({
                'user_id': user_id,
                'track_spotify_id': track_id,
                'track_name': entry.master_metadata_track_name,
                'artist_name': entry.master_metadata_album_artist_name,
                'album_name': entry.master_metadata_album_album_name,
                'ms_played': int(entry.ms_played),
                'played_at': parse_timestamp(entry.ts),
                'source': IMPORT_SOURCE,
            })

        # Phase 2: deduplicate against what is already stored
        existing = self.store.existing_play_keys(user_id)
        new_rows = []
        duplicates = 0
        for row in candidates:
            key = (row['track_spotify_id'], to_iso(row['played_at']))
            if key in existing:
                duplicates += 1
                continue
            new_rows.append(row)

        # Phase 3: batch insert
        self.store.insert_plays(new_rows, self.settings.IMPORT_BATCH_SIZE)

        skip_reasons = SkipReasons(**reasons)
        result = ImportResult(
            total=len(entries),
            imported=len(new_rows),
            skipped=skip_reasons.total,
            duplicates=duplicates,
            skip_reasons=skip_reasons
        )
        logger.info(
            f"Import for user {user_id}: {result.total} entries, {result.imported} imported, "
            f"{result.skipped} skipped, {result.duplicates} duplicates"
        )
        return result

    def import_history_json(self, user_id: str, raw_body: Any) -> ImportResult:
        """Import a request body that has not been decoded yet"""
        if not isinstance(raw_body, (bytes, bytearray, str)):
            raise ValidationError("Invalid JSON body")
        return self.import_history(user_id, raw_body)

    def delete_all_history(self, user_id: str) -> DeleteResult:
        deleted = self.store.delete_for_user(user_id)
        logger.info(f"Deleted {deleted} play events for user {user_id}")
        return DeleteResult(deleted=deleted)

    def import_status(self, user_id: str) -> ImportStatus:
        total, first_played, last_played = self.store.play_totals(user_id)
        has_data = total > 0
        date_range = None
        if has_data and first_played and last_played:
            date_range = DateRange(from_=to_iso(first_played), to=to_iso(last_played))
        return ImportStatus(has_data=has_data, total_tracks=total, date_range=date_range)
