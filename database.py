"""
MongoDB access

Each Pydantic model in schemas.py maps onto a collection named after the
lowercase entity: `user`, `day`, `exercise`. Foreign keys are the string form
of the parent's `_id`.
"""
import logging
import os
from contextlib import contextmanager
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from errors import PlannerError, TransactionFailed, TransactionOutcomeUnknown

logger = logging.getLogger(__name__)

# ENV
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "fitplanner")
DATABASE_TIMEOUT_MS = int(os.getenv("DATABASE_TIMEOUT_MS", "5000"))
COMMIT_ATTEMPTS = 3

# MongoClient connects lazily, so importing this module never blocks
client = MongoClient(DATABASE_URL, tz_aware=True, serverSelectionTimeoutMS=DATABASE_TIMEOUT_MS)
db = client[DATABASE_NAME]


def get_db():
    return db


def to_object_id(value) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def public(doc: Optional[dict]) -> Optional[dict]:
    """Copy of a stored document fit for a response: `_id` becomes `id`, secrets are dropped."""
    if doc is None:
        return None
    out = {k: v for k, v in doc.items() if k not in ("_id", "password_hash", "access_token")}
    out["id"] = str(doc["_id"])
    return out


@contextmanager
def transaction(database):
    """
    Run the block inside one multi-document transaction.

    Planner errors raised by the block abort and propagate as-is. Anything
    else aborts and surfaces as TransactionFailed once the abort is done.
    A commit the server rejected is TransactionFailed too; a commit whose
    result stays unknown after retries is TransactionOutcomeUnknown.
    Requires a replica set or sharded cluster.
    """
    with database.client.start_session() as session:
        session.start_transaction()
        try:
            yield session
        except PlannerError:
            session.abort_transaction()
            raise
        except Exception as e:
            session.abort_transaction()
            raise TransactionFailed() from e
        _commit(session)


def _commit(session) -> None:
    # a commit with an unknown outcome may already be applied, so it is retried
    # rather than reported as a clean failure
    for attempt in range(1, COMMIT_ATTEMPTS + 1):
        try:
            session.commit_transaction()
            return
        except PyMongoError as e:
            if not e.has_error_label("UnknownTransactionCommitResult"):
                raise TransactionFailed() from e
            if attempt == COMMIT_ATTEMPTS:
                raise TransactionOutcomeUnknown() from e


def ensure_indexes(database) -> None:
    database.user.create_index([("email", ASCENDING)], unique=True)
    database.day.create_index([("user_id", ASCENDING), ("day_name", ASCENDING)], unique=True)
    database.day.create_index([("user_id", ASCENDING), ("position", ASCENDING)])
    database.exercise.create_index(
        [("user_id", ASCENDING), ("day_id", ASCENDING), ("exercise_details.id", ASCENDING)]
    )
    logger.info("Indexes ensured on %s", database.name)
