"""SQLAlchemy database models for users and their play history"""
import datetime
import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()

def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC).replace(tzinfo=None)

class User(Base):
    """
    Account owning a play history.
    Credentials live here only so the token refresh can find them.
    """
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    spotify_id = Column(String, unique=True, nullable=False)
    display_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    refresh_token = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

class PlayEvent(Base):
    """
    One completed listening event imported from a streaming history export.
    played_at is stored as naive UTC. Rows are never updated.
    """
    __tablename__ = 'listening_history'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    track_spotify_id = Column(String, nullable=False)
    artist_name = Column(String, nullable=False)
    track_name = Column(String, nullable=False)
    album_name = Column(String, nullable=True)
    ms_played = Column(Integer, nullable=False)
    played_at = Column(DateTime, nullable=False)
    source = Column(String, nullable=False, default='import')

    __table_args__ = (
        Index('listening_history_user_id_idx', 'user_id'),
        Index('listening_history_played_at_idx', 'played_at'),
        Index('listening_history_track_idx', 'user_id', 'track_spotify_id'),
    )
