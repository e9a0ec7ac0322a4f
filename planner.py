"""
Weekly planner rotation

A user's days form a cycle that starts on the planner start date. Today's day
is the day at `elapsed_days % len(days)` in creation order, so adding or
removing a day after the planner started re-maps every following day.
"""
from datetime import datetime, timezone
from typing import List, Optional, Sequence, TypeVar

from pymongo import ASCENDING, ReturnDocument

from database import public, to_object_id
from errors import NoDaysConfigured, PlannerDateMissing, PlannerNotYetStarted, UserNotFound

T = TypeVar("T")

# Creation order. position is assigned at insert, created_at breaks legacy ties
ROTATION_ORDER = [("position", ASCENDING), ("created_at", ASCENDING), ("_id", ASCENDING)]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def elapsed_days(start: datetime, now: datetime) -> int:
    """Whole days from start to now; partial days are dropped, any time before start is negative."""
    return (_as_utc(now) - _as_utc(start)).days


def resolve_today(ordered_days: Sequence[T], start: Optional[datetime], now: datetime) -> T:
    if start is None:
        raise PlannerDateMissing()
    elapsed = elapsed_days(start, now)
    if elapsed < 0:
        raise PlannerNotYetStarted()
    if not ordered_days:
        raise NoDaysConfigured()
    return ordered_days[elapsed % len(ordered_days)]


def user_days(db, user_id: str) -> List[dict]:
    return list(db.day.find({"user_id": user_id}, sort=ROTATION_ORDER))


def get_user(db, user_id: str) -> dict:
    oid = to_object_id(user_id)
    user = db.user.find_one({"_id": oid}) if oid else None
    if user is None:
        raise UserNotFound()
    return user


def todays_day(db, user_id: str, now: Optional[datetime] = None) -> dict:
    user = get_user(db, user_id)
    now = now or datetime.now(timezone.utc)
    return resolve_today(user_days(db, user_id), user.get("planner_start_date"), now)


def todays_exercises(db, user_id: str, now: Optional[datetime] = None) -> dict:
    day = todays_day(db, user_id, now)
    exercises = db.exercise.find(
        {"user_id": user_id, "day_id": str(day["_id"])},
        sort=[("created_at", ASCENDING), ("_id", ASCENDING)],
    )
    return {"day": public(day), "exercises": [public(e) for e in exercises]}


def set_planner_start(db, user_id: str, start: datetime) -> dict:
    oid = to_object_id(user_id)
    user = db.user.find_one_and_update(
        {"_id": oid},
        {"$set": {"planner_start_date": _as_utc(start)}},
        return_document=ReturnDocument.AFTER,
    ) if oid else None
    if user is None:
        raise UserNotFound()
    return public(user)
