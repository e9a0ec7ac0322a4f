"""
Tests for cascading day and user deletion, including induced storage failures
inside the transaction.
"""
import pytest
from pymongo.errors import OperationFailure

import cascade
from database import COMMIT_ATTEMPTS
from errors import DayNotFound, TransactionFailed, TransactionOutcomeUnknown, UserNotFound

pytestmark = pytest.mark.unit


@pytest.fixture
def planner_data(db, user_id, make_days):
    """Two days with two exercises each, plus another user's day and exercise."""
    legs, push = make_days(user_id, "Legs", "Push")
    for day_id in (legs, push):
        for ex in ("a", "b"):
            db.exercise.insert_one({"user_id": user_id, "day_id": day_id, "exercise_details": {"id": ex}})

    other = str(db.user.insert_one({"name": "Bob", "email": "bob@example.com"}).inserted_id)
    (other_day,) = make_days(other, "Legs")
    db.exercise.insert_one({"user_id": other, "day_id": other_day, "exercise_details": {"id": "a"}})
    return {"legs": legs, "push": push, "other": other, "other_day": other_day}


class TestDeleteDay:

    def test_removes_day_and_its_exercises(self, db, user_id, planner_data):
        deleted = cascade.delete_day(db, user_id, planner_data["legs"])

        assert deleted["id"] == planner_data["legs"]
        assert db.day.count_documents({"user_id": user_id}) == 1
        assert db.exercise.count_documents({"day_id": planner_data["legs"]}) == 0
        assert db.exercise.count_documents({"day_id": planner_data["push"]}) == 2
        assert db.transactions == ["committed"]

    def test_other_users_data_untouched(self, db, user_id, planner_data):
        cascade.delete_day(db, user_id, planner_data["legs"])
        assert db.exercise.count_documents({"user_id": planner_data["other"]}) == 1

    def test_day_of_another_user_is_not_found(self, db, user_id, planner_data):
        with pytest.raises(DayNotFound):
            cascade.delete_day(db, user_id, planner_data["other_day"])
        assert db.transactions == []

    @pytest.mark.parametrize("day_id", ["65f000000000000000000000", "garbage", ""])
    def test_unknown_day(self, db, user_id, planner_data, day_id):
        with pytest.raises(DayNotFound):
            cascade.delete_day(db, user_id, day_id)

    @pytest.mark.parametrize("collection,op", [
        ("exercise", "delete_many"),
        ("day", "delete_one"),
    ])
    def test_failure_inside_transaction_changes_nothing(self, db, user_id, planner_data, collection, op):
        before = db.snapshot()
        db.fail_on(collection, op)

        with pytest.raises(TransactionFailed):
            cascade.delete_day(db, user_id, planner_data["legs"])

        assert db.snapshot() == before
        assert db.transactions == ["aborted"]

    def test_failed_commit_is_reported(self, db, user_id, planner_data):
        db.fail_on("session", "commit_transaction")
        with pytest.raises(TransactionFailed):
            cascade.delete_day(db, user_id, planner_data["legs"])


class TestDeleteUser:

    def test_removes_user_days_and_exercises(self, db, user_id, planner_data):
        assert cascade.delete_user(db, user_id) == {"deleted": True, "id": user_id}

        assert db.day.count_documents({"user_id": user_id}) == 0
        assert db.exercise.count_documents({"user_id": user_id}) == 0
        assert db.user.count_documents({"name": "Ada"}) == 0
        assert db.day.count_documents({"user_id": planner_data["other"]}) == 1
        assert db.exercise.count_documents({"user_id": planner_data["other"]}) == 1

    def test_user_without_days(self, db, user_id):
        cascade.delete_user(db, user_id)
        assert db.user.count_documents({}) == 0

    @pytest.mark.parametrize("collection,op", [
        ("exercise", "delete_many"),
        ("day", "delete_many"),
        ("user", "delete_one"),
    ])
    def test_failure_after_days_queried_keeps_everything(self, db, user_id, planner_data, collection, op):
        before = db.snapshot()
        db.fail_on(collection, op)

        with pytest.raises(TransactionFailed):
            cascade.delete_user(db, user_id)

        assert db.snapshot() == before
        assert db.transactions == ["aborted"]

    def test_missing_user_aborts_with_not_found(self, db, planner_data):
        with pytest.raises(UserNotFound):
            cascade.delete_user(db, "65f000000000000000000000")
        assert db.transactions == ["aborted"]

    def test_orphan_days_of_missing_user_are_kept(self, db, make_days):
        ghost = "65f000000000000000000001"
        make_days(ghost, "Legs")
        with pytest.raises(UserNotFound):
            cascade.delete_user(db, ghost)
        assert db.day.count_documents({"user_id": ghost}) == 1


def unknown_commit_result():
    return OperationFailure("commit timed out", details={"errorLabels": ["UnknownTransactionCommitResult"]})


class TestCommitOutcome:

    def test_unknown_commit_result_is_retried(self, db, user_id, planner_data):
        db.fail_on("session", "commit_transaction", exc=unknown_commit_result())

        cascade.delete_day(db, user_id, planner_data["legs"])

        assert db.day.count_documents({"user_id": user_id}) == 1
        assert db.exercise.count_documents({"day_id": planner_data["legs"]}) == 0
        assert db.transactions == ["committed"]

    def test_unknown_commit_result_that_persists_is_not_reported_as_failed(self, db, user_id, planner_data):
        db.fail_on("session", "commit_transaction", exc=unknown_commit_result(), times=COMMIT_ATTEMPTS)

        with pytest.raises(TransactionOutcomeUnknown) as info:
            cascade.delete_day(db, user_id, planner_data["legs"])

        assert not isinstance(info.value, TransactionFailed)
        assert info.value.status_code == 500

    def test_one_retry_short_of_the_limit_still_commits(self, db, user_id, planner_data):
        db.fail_on("session", "commit_transaction", exc=unknown_commit_result(), times=COMMIT_ATTEMPTS - 1)
        cascade.delete_user(db, user_id)
        assert db.user.count_documents({"name": "Ada"}) == 0
        assert db.transactions == ["committed"]

    def test_commit_rejected_without_label_is_not_retried(self, db, user_id, planner_data):
        before = db.snapshot()
        db.fail_on("session", "commit_transaction", exc=OperationFailure("write conflict"), times=2)

        with pytest.raises(TransactionFailed):
            cascade.delete_day(db, user_id, planner_data["legs"])

        # the second injected failure was never reached
        assert ("session", "commit_transaction") in db._failures
        assert db.snapshot() == before
