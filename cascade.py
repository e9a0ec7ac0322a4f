"""
Cascading deletes

Exercises point at their day through `day_id` and MongoDB enforces no foreign
keys, so removing a day or a user must remove the dependents in the same
transaction. Either every document goes or none does.
"""
from database import public, to_object_id, transaction
from days import find_day
from errors import DayNotFound, UserNotFound


def delete_day(db, user_id: str, day_id: str) -> dict:
    day = find_day(db, user_id, day_id)
    if day is None:
        raise DayNotFound()

    with transaction(db) as session:
        db.exercise.delete_many({"user_id": user_id, "day_id": str(day["_id"])}, session=session)
        result = db.day.delete_one({"_id": day["_id"], "user_id": user_id}, session=session)
        if result.deleted_count == 0:
            # removed by a concurrent request after the lookup
            raise DayNotFound()
    return public(day)


def delete_user(db, user_id: str) -> dict:
    oid = to_object_id(user_id)
    if oid is None:
        raise UserNotFound()

    with transaction(db) as session:
        days = list(db.day.find({"user_id": user_id}, {"_id": 1}, session=session))
        if days:
            day_ids = [str(d["_id"]) for d in days]
            db.exercise.delete_many({"day_id": {"$in": day_ids}}, session=session)
            db.day.delete_many({"user_id": user_id}, session=session)
        result = db.user.delete_one({"_id": oid}, session=session)
        if result.deleted_count == 0:
            raise UserNotFound()
    return {"deleted": True, "id": user_id}
