from datetime import datetime, timezone

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import public, to_object_id
from errors import DayAlreadyExists, DayNotFound, MissingData, NoDaysConfigured
from planner import user_days
from schemas import Day


def find_day(db, user_id: str, day_id: str, session=None):
    """The user's day with this id, or None when it is missing or owned by someone else."""
    oid = to_object_id(day_id)
    if oid is None:
        return None
    return db.day.find_one({"_id": oid, "user_id": user_id}, session=session)


def _next_position(db, user_id: str) -> int:
    last = db.day.find_one({"user_id": user_id}, sort=[("position", DESCENDING)])
    if last is None or last.get("position") is None:
        return 0
    return last["position"] + 1


def add_day(db, user_id: str, day_name: str) -> dict:
    day_name = (day_name or "").strip()
    if not day_name:
        raise MissingData("Day name is required")
    if db.day.find_one({"user_id": user_id, "day_name": day_name}):
        raise DayAlreadyExists()

    day = Day(
        user_id=user_id,
        day_name=day_name,
        position=_next_position(db, user_id),
        created_at=datetime.now(timezone.utc),
    )
    doc = day.model_dump()
    try:
        doc["_id"] = db.day.insert_one(doc).inserted_id
    except DuplicateKeyError:
        raise DayAlreadyExists()
    return public(doc)


def list_days(db, user_id: str) -> list:
    days = user_days(db, user_id)
    if not days:
        raise NoDaysConfigured()
    return [public(d) for d in days]


def rename_day(db, user_id: str, day_id: str, day_name: str) -> dict:
    day_name = (day_name or "").strip()
    if not day_name:
        raise MissingData("Day id and name are required")
    day = find_day(db, user_id, day_id)
    if day is None:
        raise DayNotFound()
    clash = db.day.find_one({"user_id": user_id, "day_name": day_name})
    if clash is not None and clash["_id"] != day["_id"]:
        raise DayAlreadyExists()

    try:
        updated = db.day.find_one_and_update(
            {"_id": day["_id"], "user_id": user_id},
            {"$set": {"day_name": day_name}},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise DayAlreadyExists()
    if updated is None:
        raise DayNotFound()
    return public(updated)
