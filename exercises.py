"""
Exercises of a user's days

Every read and write is scoped to a `(user_id, day_id)` pair the caller owns,
and a day never holds two exercises with the same `exercise_details.id`.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, ReturnDocument

from database import public, to_object_id, transaction
from days import find_day
from errors import (
    DayNotFound,
    ExerciseAlreadyExists,
    ExerciseNotFound,
    InvalidDaySelect,
    MissingData,
    ValidationError,
)
from schemas import Exercise, ExerciseDetails, ExerciseUpdate, Video


def _find_exercise(db, user_id: str, day_id: str, exercise_id: str):
    oid = to_object_id(exercise_id)
    if oid is None:
        return None
    return db.exercise.find_one({"_id": oid, "user_id": user_id, "day_id": day_id})


def _owned_day(db, user_id: str, day_id: str) -> dict:
    day = find_day(db, user_id, day_id)
    if day is None:
        raise DayNotFound()
    return day


def add_exercise(
    db,
    user_id: str,
    day_ids: Iterable[str],
    details: Optional[ExerciseDetails],
    videos: Optional[List[Video]] = None,
) -> List[dict]:
    """
    Add one exercise document per selected day.

    All days are checked before anything is written, and the inserts share one
    transaction, so a bad or duplicate day leaves every day untouched.
    """
    day_ids = list(dict.fromkeys(day_ids or []))
    if not day_ids or details is None:
        raise MissingData("Missing exercise and day to be added")

    days = []
    for day_id in day_ids:
        day = find_day(db, user_id, day_id)
        if day is None:
            raise InvalidDaySelect(f"Selected day {day_id} is invalid")
        duplicate = db.exercise.find_one(
            {"user_id": user_id, "day_id": str(day["_id"]), "exercise_details.id": details.id}
        )
        if duplicate is not None:
            raise ExerciseAlreadyExists(f"This exercise already exists in planner for: {day['day_name']}")
        days.append(day)

    now = datetime.now(timezone.utc)
    created = []
    with transaction(db) as session:
        for day in days:
            doc = Exercise(
                user_id=user_id,
                day_id=str(day["_id"]),
                exercise_details=details.model_copy(deep=True),
                video_recommendations=[v.model_copy() for v in videos or []],
                created_at=now,
                updated_at=now,
            ).model_dump()
            doc["_id"] = db.exercise.insert_one(doc, session=session).inserted_id
            created.append(doc)
    return [public(doc) for doc in created]


def list_day_exercises(db, user_id: str, day_id: str, offset: int = 0, limit: int = 10) -> List[dict]:
    day = _owned_day(db, user_id, day_id)
    cursor = db.exercise.find(
        {"user_id": user_id, "day_id": str(day["_id"])},
        sort=[("created_at", ASCENDING), ("_id", ASCENDING)],
        skip=max(offset, 0),
        limit=max(limit, 0),
    )
    return [public(e) for e in cursor]


def update_exercise(db, user_id: str, day_id: str, exercise_id: str, update: ExerciseUpdate) -> dict:
    day = _owned_day(db, user_id, day_id)
    current = _find_exercise(db, user_id, str(day["_id"]), exercise_id)
    if current is None:
        raise ExerciseNotFound()

    details = dict(current.get("exercise_details") or {})
    if update.exercise_details is not None:
        details.update(update.exercise_details.model_dump(exclude_unset=True))
    try:
        details = ExerciseDetails.model_validate(details).model_dump()
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid exercise details: {e.errors()[0]['msg']}") from e

    if details["id"] != (current.get("exercise_details") or {}).get("id"):
        duplicate = db.exercise.find_one({
            "user_id": user_id,
            "day_id": str(day["_id"]),
            "exercise_details.id": details["id"],
            "_id": {"$ne": current["_id"]},
        })
        if duplicate is not None:
            raise ExerciseAlreadyExists(f"This exercise already exists in planner for: {day['day_name']}")

    # removals first, so a re-added id survives exactly once
    removed = set(update.removed_video_ids)
    videos = [v for v in current.get("video_recommendations") or [] if v.get("video_id") not in removed]
    videos.extend(v.model_dump() for v in update.added_videos)

    updated = db.exercise.find_one_and_update(
        {"_id": current["_id"], "user_id": user_id, "day_id": str(day["_id"])},
        {"$set": {
            "exercise_details": details,
            "video_recommendations": videos,
            "updated_at": datetime.now(timezone.utc),
        }},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise ExerciseNotFound()
    return public(updated)


def delete_exercise(db, user_id: str, day_id: str, exercise_id: str) -> dict:
    day = _owned_day(db, user_id, day_id)
    oid = to_object_id(exercise_id)
    deleted = db.exercise.find_one_and_delete(
        {"_id": oid, "user_id": user_id, "day_id": str(day["_id"])}
    ) if oid else None
    if deleted is None:
        raise ExerciseNotFound()
    return public(deleted)
