"""Database access for the play-event fact table"""
import logging
from datetime import datetime
from functools import wraps
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import and_, distinct, extract, func, insert, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from strata_analytics.models.db import PlayEvent, User
from strata_analytics.utils.timeutil import to_iso

logger = logging.getLogger(__name__)

# Timestamp parts understood by bucket_counts; values match PostgreSQL EXTRACT
# (dow: 0 = Sunday, month: 1-based)
BUCKET_PARTS = ('hour', 'dow', 'month', 'year')

def _storage_errors(method):
    """Log, roll back and re-raise storage failures"""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Database error in {method.__name__}: {e}")
            self.session.rollback()
            raise
    return wrapper

class EventStore:
    """Filtered and grouped reads plus batched writes over listening_history"""

    def __init__(self, session: Session):
        self.session = session

    # --- filters ---

    def _conditions(self, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None,
                    artist: Optional[str] = None, album: Optional[str] = None, year: Optional[int] = None,
                    ignore_case: bool = False) -> List[Any]:
        """
        Build WHERE conditions. start is inclusive, end exclusive.
        With ignore_case the artist/album match is a case-insensitive exact match.
        """
        conditions = [PlayEvent.user_id == user_id]
        if start is not None:
            conditions.append(PlayEvent.played_at >= start)
        if end is not None:
            conditions.append(PlayEvent.played_at < end)
        if year is not None:
            conditions.append(extract('year', PlayEvent.played_at) == year)
        if artist:
            if ignore_case:
                conditions.append(func.lower(PlayEvent.artist_name) == artist.lower())
            else:
                conditions.append(PlayEvent.artist_name == artist)
        if album:
            if ignore_case:
                conditions.append(func.lower(PlayEvent.album_name) == album.lower())
            else:
                conditions.append(PlayEvent.album_name == album)
        return conditions

    # --- writes ---

    @_storage_errors
    def existing_play_keys(self, user_id: str) -> Set[Tuple[str, str]]:
        """Every (track id, ISO played_at) pair already stored for the user"""
        rows = (
            self.session.query(PlayEvent.track_spotify_id, PlayEvent.played_at)
            .filter(PlayEvent.user_id == user_id)
            .all()
        )
        return {(row.track_spotify_id, to_iso(row.played_at)) for row in rows}

    def insert_plays(self, rows: Sequence[Dict[str, Any]], batch_size: int) -> int:
        """
        Insert rows in order, committing each batch.
        A failing batch leaves earlier batches committed.
        """
        inserted = 0
        for offset in range(0, len(rows), batch_size):
            batch = list(rows[offset:offset + batch_size])
            try:
                self.session.execute(insert(PlayEvent), batch)
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(f"Batch insert failed at row {offset} after {inserted} rows committed: {e}")
                raise
            inserted += len(batch)
            logger.debug(f"Inserted batch of {len(batch)} rows ({inserted}/{len(rows)})")
        return inserted

    @_storage_errors
    def delete_for_user(self, user_id: str) -> int:
        deleted = (
            self.session.query(PlayEvent)
            .filter(PlayEvent.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted or 0

    @_storage_errors
    def ensure_user(self, user_id: str, spotify_id: Optional[str] = None) -> User:
        """Return the user row, creating a bare one if it does not exist yet"""
        user = self.session.query(User).filter(User.id == user_id).first()
        if user is None:
            user = User(id=user_id, spotify_id=spotify_id or user_id)
            self.session.add(user)
            self.session.commit()
            logger.info(f"Created user {user_id}")
        return user

    @_storage_errors
    def find_refresh_token(self, user_id: str) -> Optional[str]:
        user = self.session.query(User.refresh_token).filter(User.id == user_id).first()
        return user.refresh_token if user else None

    # --- whole-history reads ---

    @_storage_errors
    def play_totals(self, user_id: str, **filters) -> Tuple[int, Optional[datetime], Optional[datetime]]:
        """(row count, min played_at, max played_at)"""
        row = (
            self.session.query(
                func.count(PlayEvent.id),
                func.min(PlayEvent.played_at),
                func.max(PlayEvent.played_at),
            )
            .filter(and_(*self._conditions(user_id, **filters)))
            .one()
        )
        return int(row[0] or 0), row[1], row[2]

    @_storage_errors
    def daily_counts(self, user_id: str, start: datetime, end: datetime,
                     artist: Optional[str] = None) -> List[Tuple[Any, int, int]]:
        """(UTC date, play count, ms played) per active day, chronological"""
        day = func.date(PlayEvent.played_at)
        rows = (
            self.session.query(
                day.label('day'),
                func.count(PlayEvent.id).label('count'),
                func.coalesce(func.sum(PlayEvent.ms_played), 0).label('ms_played'),
            )
            .filter(and_(*self._conditions(user_id, start=start, end=end, artist=artist)))
            .group_by(day)
            .order_by(day)
            .all()
        )
        return [(row.day, int(row.count), int(row.ms_played)) for row in rows]

    @_storage_errors
    def bucket_counts(self, user_id: str, part: str, year: Optional[int] = None, artist: Optional[str] = None,
                      album: Optional[str] = None, by_count: bool = False,
                      limit: Optional[int] = None) -> List[Tuple[int, int, int]]:
        """
        (bucket, play count, ms played) grouped by an extracted timestamp part.
        Ordered by bucket, or by count descending when by_count is set.
        """
        if part not in BUCKET_PARTS:
            raise ValueError(f"Unknown timestamp part '{part}'")
        bucket = extract(part, PlayEvent.played_at)
        count = func.count(PlayEvent.id)
        query = (
            self.session.query(
                bucket.label('bucket'),
                count.label('count'),
                func.coalesce(func.sum(PlayEvent.ms_played), 0).label('ms_played'),
            )
            .filter(and_(*self._conditions(user_id, year=year, artist=artist, album=album, ignore_case=True)))
            .group_by(bucket)
            .order_by(count.desc() if by_count else bucket)
        )
        if limit is not None:
            query = query.limit(limit)
        return [(int(row.bucket), int(row.count), int(row.ms_played)) for row in query.all()]

    @_storage_errors
    def last_play_before(self, user_id: str, moment: datetime) -> Optional[PlayEvent]:
        return (
            self.session.query(PlayEvent)
            .filter(PlayEvent.user_id == user_id, PlayEvent.played_at < moment)
            .order_by(PlayEvent.played_at.desc())
            .first()
        )

    @_storage_errors
    def first_play_from(self, user_id: str, moment: datetime) -> Optional[PlayEvent]:
        return (
            self.session.query(PlayEvent)
            .filter(PlayEvent.user_id == user_id, PlayEvent.played_at >= moment)
            .order_by(PlayEvent.played_at.asc())
            .first()
        )

    @_storage_errors
    def plays_between(self, user_id: str, start: datetime, end: datetime) -> List[PlayEvent]:
        return (
            self.session.query(PlayEvent)
            .filter(and_(*self._conditions(user_id, start=start, end=end)))
            .order_by(PlayEvent.played_at.asc(), PlayEvent.id.asc())
            .all()
        )

    # --- artist / album rankings ---

    @_storage_errors
    def top_artists(self, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None,
                    year: Optional[int] = None, hours: Optional[Iterable[int]] = None,
                    limit: Optional[int] = None) -> List[Tuple[str, int, int]]:
        """
        (artist, play count, ms played) by play count descending.
        Equal counts come back in whatever order the database returns them.
        """
        count = func.count(PlayEvent.id)
        conditions = self._conditions(user_id, start=start, end=end, year=year)
        if hours is not None:
            conditions.append(extract('hour', PlayEvent.played_at).in_(list(hours)))
        query = (
            self.session.query(
                PlayEvent.artist_name,
                count.label('count'),
                func.coalesce(func.sum(PlayEvent.ms_played), 0).label('ms_played'),
            )
            .filter(and_(*conditions))
            .group_by(PlayEvent.artist_name)
            .order_by(count.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [(row.artist_name, int(row.count), int(row.ms_played)) for row in query.all()]

    @_storage_errors
    def top_artists_by_time(self, user_id: str, limit: int) -> List[Tuple[str, int]]:
        total_ms = func.sum(PlayEvent.ms_played)
        rows = (
            self.session.query(PlayEvent.artist_name, total_ms.label('ms_played'))
            .filter(PlayEvent.user_id == user_id)
            .group_by(PlayEvent.artist_name)
            .order_by(total_ms.desc())
            .limit(limit)
            .all()
        )
        return [(row.artist_name, int(row.ms_played)) for row in rows]

    @_storage_errors
    def album_names(self, user_id: str, year: Optional[int] = None, artist: Optional[str] = None) -> List[str]:
        count = func.count(PlayEvent.id)
        rows = (
            self.session.query(PlayEvent.album_name, count.label('count'))
            .filter(and_(*self._conditions(user_id, year=year, artist=artist, ignore_case=True)))
            .group_by(PlayEvent.album_name)
            .order_by(count.desc())
            .all()
        )
        return [row.album_name for row in rows if row.album_name]

    @_storage_errors
    def period_stats(self, user_id: str, start: datetime, end: datetime) -> Tuple[int, int, int, int]:
        """(total plays, total ms, unique artists, unique tracks) in [start, end)"""
        row = (
            self.session.query(
                func.count(PlayEvent.id),
                func.coalesce(func.sum(PlayEvent.ms_played), 0),
                func.count(distinct(PlayEvent.artist_name)),
                func.count(distinct(PlayEvent.track_spotify_id)),
            )
            .filter(and_(*self._conditions(user_id, start=start, end=end)))
            .one()
        )
        return int(row[0] or 0), int(row[1] or 0), int(row[2] or 0), int(row[3] or 0)

    @_storage_errors
    def distinct_years(self, user_id: str) -> List[int]:
        year = extract('year', PlayEvent.played_at)
        rows = (
            self.session.query(year.label('year'))
            .filter(PlayEvent.user_id == user_id)
            .group_by(year)
            .order_by(year.desc())
            .all()
        )
        return [int(row.year) for row in rows]

    # --- monthly series ---

    @_storage_errors
    def artist_monthly(self, user_id: str, artist: str) -> List[Tuple[int, int, int, int, int]]:
        """(year, month, play count, ms played, distinct tracks) for one artist, chronological"""
        year = extract('year', PlayEvent.played_at)
        month = extract('month', PlayEvent.played_at)
        rows = (
            self.session.query(
                year.label('year'),
                month.label('month'),
                func.count(PlayEvent.id).label('count'),
                func.coalesce(func.sum(PlayEvent.ms_played), 0).label('ms_played'),
                func.count(distinct(PlayEvent.track_spotify_id)).label('tracks'),
            )
            .filter(PlayEvent.user_id == user_id, PlayEvent.artist_name == artist)
            .group_by(year, month)
            .order_by(year, month)
            .all()
        )
        return [(int(r.year), int(r.month), int(r.count), int(r.ms_played), int(r.tracks)) for r in rows]

    @_storage_errors
    def album_monthly(self, user_id: str) -> List[Tuple[int, int, str, str, int, int, str]]:
        """
        (year, month, album, artist, play count, ms played, a track id) per album per month,
        chronological and by play count descending within a month.
        """
        year = extract('year', PlayEvent.played_at)
        month = extract('month', PlayEvent.played_at)
        count = func.count(PlayEvent.id)
        rows = (
            self.session.query(
                year.label('year'),
                month.label('month'),
                PlayEvent.album_name,
                PlayEvent.artist_name,
                count.label('count'),
                func.coalesce(func.sum(PlayEvent.ms_played), 0).label('ms_played'),
                func.min(PlayEvent.track_spotify_id).label('track_id'),
            )
            .filter(PlayEvent.user_id == user_id, PlayEvent.album_name.isnot(None), PlayEvent.album_name != '')
            .group_by(year, month, PlayEvent.album_name, PlayEvent.artist_name)
            .order_by(year, month, count.desc())
            .all()
        )
        return [
            (int(r.year), int(r.month), r.album_name, r.artist_name, int(r.count), int(r.ms_played), r.track_id)
            for r in rows
        ]

    @_storage_errors
    def artists_monthly_ms(self, user_id: str, artists: Sequence[str]) -> List[Tuple[int, int, str, int]]:
        """(year, month, artist, ms played) for the given artists, chronological"""
        year = extract('year', PlayEvent.played_at)
        month = extract('month', PlayEvent.played_at)
        rows = (
            self.session.query(
                year.label('year'),
                month.label('month'),
                PlayEvent.artist_name,
                func.sum(PlayEvent.ms_played).label('ms_played'),
            )
            .filter(PlayEvent.user_id == user_id, PlayEvent.artist_name.in_(list(artists)))
            .group_by(year, month, PlayEvent.artist_name)
            .order_by(year, month)
            .all()
        )
        return [(int(r.year), int(r.month), r.artist_name, int(r.ms_played)) for r in rows]

    @_storage_errors
    def daily_artist_counts(self, user_id: str) -> List[Tuple[Any, str, int]]:
        """(UTC date, artist, play count) for the whole history, chronological"""
        day = func.date(PlayEvent.played_at)
        rows = (
            self.session.query(day.label('day'), PlayEvent.artist_name, func.count(PlayEvent.id).label('count'))
            .filter(PlayEvent.user_id == user_id)
            .group_by(day, PlayEvent.artist_name)
            .order_by(day)
            .all()
        )
        return [(row.day, row.artist_name, int(row.count)) for row in rows]

    # --- lookback ---

    @_storage_errors
    def track_plays_between(self, user_id: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        """Plays in [start, end) aggregated per track, most played first"""
        count = func.count(PlayEvent.id)
        rows = (
            self.session.query(
                PlayEvent.track_spotify_id,
                PlayEvent.track_name,
                PlayEvent.artist_name,
                PlayEvent.album_name,
                func.sum(PlayEvent.ms_played).label('total_ms_played'),
                func.min(PlayEvent.played_at).label('first_played_at'),
                count.label('play_count'),
            )
            .filter(and_(*self._conditions(user_id, start=start, end=end)))
            .group_by(PlayEvent.track_spotify_id, PlayEvent.track_name, PlayEvent.artist_name, PlayEvent.album_name)
            .order_by(count.desc())
            .all()
        )
        return [dict(row._mapping) for row in rows]

    @_storage_errors
    def dormant_artists(self, user_id: str, last_played_before: datetime, min_ms_played: int,
                        limit: int) -> List[Dict[str, Any]]:
        """Artists with at least min_ms_played in total and nothing since last_played_before"""
        total_ms = func.sum(PlayEvent.ms_played)
        last_played = func.max(PlayEvent.played_at)
        rows = (
            self.session.query(
                PlayEvent.artist_name,
                total_ms.label('total_ms_played'),
                func.count(PlayEvent.id).label('play_count'),
                last_played.label('last_played'),
            )
            .filter(PlayEvent.user_id == user_id)
            .group_by(PlayEvent.artist_name)
            .having(and_(total_ms >= min_ms_played, last_played < last_played_before))
            .order_by(total_ms.desc())
            .limit(limit)
            .all()
        )
        return [dict(row._mapping) for row in rows]

    # --- library browsing ---

    def _library_conditions(self, user_id: str, search: Optional[str], artist: Optional[str] = None,
                            album: Optional[str] = None, search_tracks: bool = True) -> List[Any]:
        """Substring search is case-insensitive; artist and album filters are exact"""
        conditions = self._conditions(user_id, artist=artist, album=album)
        if search:
            pattern = f'%{search}%'
            if search_tracks:
                conditions.append(or_(PlayEvent.track_name.ilike(pattern), PlayEvent.artist_name.ilike(pattern)))
            else:
                conditions.append(PlayEvent.artist_name.ilike(pattern))
        return conditions

    @staticmethod
    def _library_order(sort: str, name_column, descending: bool):
        if sort == 'time':
            column = func.sum(PlayEvent.ms_played)
        elif sort == 'recent':
            column = func.max(PlayEvent.played_at)
        elif sort == 'name':
            column = name_column
        else:
            column = func.count(PlayEvent.id)
        return column.desc() if descending else column.asc()

    @_storage_errors
    def library_tracks(self, user_id: str, sort: str = 'plays', descending: bool = True,
                       search: Optional[str] = None, artist: Optional[str] = None, album: Optional[str] = None,
                       limit: int = 50, offset: int = 0) -> Tuple[List[Dict[str, Any]], int]:
        """One page of per-track aggregates and the number of distinct matching tracks"""
        conditions = self._library_conditions(user_id, search, artist=artist, album=album)
        rows = (
            self.session.query(
                PlayEvent.track_spotify_id,
                PlayEvent.track_name,
                PlayEvent.artist_name,
                PlayEvent.album_name,
                func.count(PlayEvent.id).label('play_count'),
                func.sum(PlayEvent.ms_played).label('total_ms_played'),
                func.min(PlayEvent.played_at).label('first_played_at'),
                func.max(PlayEvent.played_at).label('last_played_at'),
            )
            .filter(and_(*conditions))
            .group_by(PlayEvent.track_spotify_id, PlayEvent.track_name, PlayEvent.artist_name, PlayEvent.album_name)
            .order_by(self._library_order(sort, PlayEvent.track_name, descending))
            .limit(limit)
            .offset(offset)
            .all()
        )
        total = (
            self.session.query(func.count(distinct(PlayEvent.track_spotify_id)))
            .filter(and_(*conditions))
            .scalar()
        )
        return [dict(row._mapping) for row in rows], int(total or 0)

    @_storage_errors
    def library_artists(self, user_id: str, sort: str = 'plays', descending: bool = True,
                        search: Optional[str] = None, limit: int = 50,
                        offset: int = 0) -> Tuple[List[Dict[str, Any]], int]:
        """One page of per-artist aggregates and the number of distinct matching artists"""
        conditions = self._library_conditions(user_id, search, search_tracks=False)
        rows = (
            self.session.query(
                PlayEvent.artist_name,
                func.count(PlayEvent.id).label('play_count'),
                func.count(distinct(PlayEvent.track_spotify_id)).label('unique_tracks'),
                func.sum(PlayEvent.ms_played).label('total_ms_played'),
            )
            .filter(and_(*conditions))
            .group_by(PlayEvent.artist_name)
            .order_by(self._library_order(sort, PlayEvent.artist_name, descending))
            .limit(limit)
            .offset(offset)
            .all()
        )
        total = (
            self.session.query(func.count(distinct(PlayEvent.artist_name)))
            .filter(and_(*conditions))
            .scalar()
        )
        return [dict(row._mapping) for row in rows], int(total or 0)

    @_storage_errors
    def distinct_albums(self, user_id: str, artist: Optional[str] = None) -> List[str]:
        """Non-empty album names, alphabetical"""
        rows = (
            self.session.query(distinct(PlayEvent.album_name).label('album_name'))
            .filter(and_(*self._conditions(user_id, artist=artist)))
            .all()
        )
        return sorted(row.album_name for row in rows if row.album_name)

    @_storage_errors
    def library_totals(self, user_id: str) -> Dict[str, Any]:
        """Distinct tracks and artists, plays, listening time and first/last play"""
        row = (
            self.session.query(
                func.count(distinct(PlayEvent.track_spotify_id)).label('total_tracks'),
                func.count(distinct(PlayEvent.artist_name)).label('total_artists'),
                func.count(PlayEvent.id).label('total_plays'),
                func.coalesce(func.sum(PlayEvent.ms_played), 0).label('total_ms_played'),
                func.min(PlayEvent.played_at).label('first_played_at'),
                func.max(PlayEvent.played_at).label('last_played_at'),
            )
            .filter(PlayEvent.user_id == user_id)
            .one()
        )
        return dict(row._mapping)

    @_storage_errors
    def top_track(self, user_id: str) -> Optional[Tuple[str, str, int]]:
        """(track name, artist, play count) of the most played track, or None"""
        count = func.count(PlayEvent.id)
        row = (
            self.session.query(PlayEvent.track_name, PlayEvent.artist_name, count.label('count'))
            .filter(PlayEvent.user_id == user_id)
            .group_by(PlayEvent.track_spotify_id, PlayEvent.track_name, PlayEvent.artist_name)
            .order_by(count.desc())
            .first()
        )
        if row is None:
            return None
        return row.track_name, row.artist_name, int(row.count)
