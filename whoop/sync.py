"""
Import Whoop biometrics into the daily health log.
Pulls cycles, recovery, and sleep and folds them into one HealthEntry per day.

Usage:
    python main.py import            # last DEFAULT_IMPORT_DAYS days
    python main.py import --days 30
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from db.database import get_db
from db.models import HealthEntry
from whoop.client import WhoopClient

logger = logging.getLogger(__name__)

KCAL_PER_KJ = 0.239
MILLIS_PER_HOUR = 3_600_000


@dataclass
class WorkoutSummary:
    sport: str
    strain: float | None
    duration: int                   # minutes
    calories: int | None
    avg_hr: int | None
    max_hr: int | None
    start_time: datetime | None


def _parse_dt(s: str | None) -> datetime | None:
    if not s:
        return None
    # Whoop returns ISO strings with trailing Z
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).astimezone(timezone.utc)
    except ValueError:
        return None


def _day(s: str | None) -> date | None:
    dt = _parse_dt(s)
    return dt.date() if dt else None


def summarize_workout(record: dict) -> WorkoutSummary:
    score = record.get("score") or {}
    start, end = _parse_dt(record.get("start")), _parse_dt(record.get("end"))
    duration = int((end - start).total_seconds() // 60) if start and end else 0
    kilojoules = score.get("kilojoule")
    return WorkoutSummary(
        sport=record.get("sport_name") or str(record.get("sport_id", "Unknown")),
        strain=score.get("strain"),
        duration=duration,
        calories=round(kilojoules * KCAL_PER_KJ) if kilojoules is not None else None,
        avg_hr=score.get("average_heart_rate"),
        max_hr=score.get("max_heart_rate"),
        start_time=start,
    )


def collect_daily_metrics(cycles: list[dict], recoveries: list[dict], sleeps: list[dict]) -> dict[date, dict]:
    """Fold raw Whoop records into {day: {column: value}}."""
    days: dict[date, dict] = {}
    cycle_days: dict = {}

    for c in cycles:
        day = _day(c.get("start"))
        if day is None:
            continue
        cycle_days[c.get("id")] = day
        strain = (c.get("score") or {}).get("strain")
        if strain is not None:
            days.setdefault(day, {})["strain"] = round(strain, 1)

    for r in recoveries:
        day = cycle_days.get(r.get("cycle_id")) or _day(r.get("created_at"))
        score = r.get("score") or {}
        if day is None or r.get("score_state") not in (None, "SCORED"):
            continue
        metrics = days.setdefault(day, {})
        if score.get("recovery_score") is not None:
            metrics["recovery"] = round(score["recovery_score"])
        if score.get("resting_heart_rate") is not None:
            metrics["rhr"] = round(score["resting_heart_rate"])
        if score.get("hrv_rmssd_milli") is not None:
            metrics["hrv"] = round(score["hrv_rmssd_milli"], 1)

    for s in sleeps:
        if s.get("nap"):
            continue
        day = _day(s.get("end"))
        stages = (s.get("score") or {}).get("stage_summary") or {}
        in_bed = stages.get("total_in_bed_time_milli")
        if day is None or in_bed is None:
            continue
        asleep = in_bed - (stages.get("total_awake_time_milli") or 0)
        metrics = days.setdefault(day, {})
        metrics["sleep"] = round(metrics.get("sleep", 0) + asleep / MILLIS_PER_HOUR, 2)

    return days


def save_daily_metrics(days: dict[date, dict]) -> int:
    """Upsert Whoop-sourced columns. Manual columns (weight, notes) are left alone."""
    now = datetime.now(timezone.utc)
    with get_db() as db:
        for day, metrics in days.items():
            entry = db.query(HealthEntry).filter_by(date=day).first()
            if entry is None:
                entry = HealthEntry(date=day)
                db.add(entry)
            for column, value in metrics.items():
                setattr(entry, column, value)
            entry.whoop_synced_at = now
    return len(days)


async def import_biometrics(client: WhoopClient, days: int = 7) -> dict[str, int]:
    """Pull cycles, recovery, and sleep for the last `days` days into the health log."""
    start = datetime.now(timezone.utc) - timedelta(days=days)
    logger.info(f"Importing Whoop data for last {days} days...")

    params = {"limit": 25, "start": start.strftime("%Y-%m-%dT%H:%M:%S.000Z")}
    cycles, recoveries, sleeps = await asyncio.gather(
        client.get_all("/cycle", params),
        client.get_all("/recovery", params),
        client.get_all("/activity/sleep", params),
    )

    saved = save_daily_metrics(collect_daily_metrics(cycles, recoveries, sleeps))
    counts = {"cycles": len(cycles), "recovery": len(recoveries), "sleep": len(sleeps), "days": saved}
    logger.info(f"Import complete — {counts}")
    return counts
