from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Float, Text, DateTime, Date
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class StoredValue(Base):
    """Plain key/value persistence for connector state (tokens, expiry)."""

    __tablename__ = "stored_values"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class HealthEntry(Base):
    __tablename__ = "health_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, unique=True, nullable=False)
    recovery = Column(Integer)                  # 0–100
    strain = Column(Float)                      # day strain, 0–21
    rhr = Column(Integer)                       # resting heart rate, bpm
    hrv = Column(Float)                         # rmssd, ms
    sleep = Column(Float)                       # hours asleep, naps excluded
    weight = Column(Float)                      # kg, manual entry
    training_notes = Column(Text)
    whoop_synced_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=_utcnow)
