"""
Planner errors

Every error raised by the planner carries a stable `kind`, a human message
and the status code the API answers with. Nothing here logs.
"""
from typing import Optional


class PlannerError(Exception):
    kind = "PlannerError"
    status_code = 500
    default_message = "Something went wrong, please try again later"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind}


# ----------------------- Categories -----------------------
class ValidationError(PlannerError):
    kind = "ValidationError"
    status_code = 400
    default_message = "Invalid request data"


class NotFoundError(PlannerError):
    kind = "NotFound"
    status_code = 404
    default_message = "Not found"


class ConflictError(PlannerError):
    kind = "Conflict"
    status_code = 409
    default_message = "Already exists"


class AuthError(PlannerError):
    kind = "AuthError"
    status_code = 401
    default_message = "Could not validate credentials"


class TransactionFailed(PlannerError):
    """Raised only after the transaction was aborted; nothing was written."""

    kind = "TransactionFailed"
    status_code = 500


class TransactionOutcomeUnknown(PlannerError):
    """The commit could not be confirmed either way; the writes may or may not be applied."""

    kind = "TransactionOutcomeUnknown"
    status_code = 500


# ----------------------- Validation -----------------------
class MissingData(ValidationError):
    kind = "MissingData"
    default_message = "Not all required fields are filled"


class SamePassword(ValidationError):
    kind = "SamePassword"
    default_message = "New password must differ from the old one"


# ----------------------- Not found -----------------------
class UserNotFound(NotFoundError):
    kind = "UserNotFound"
    default_message = "No user found, please register first"


class DayNotFound(NotFoundError):
    kind = "DayNotFound"
    default_message = "No day found in planner with this id"


class ExerciseNotFound(NotFoundError):
    kind = "ExerciseNotFound"
    default_message = "No exercise found for this day"


class InvalidDaySelect(NotFoundError):
    kind = "InvalidDaySelect"
    default_message = "One of the selected days is invalid"


class NoDaysConfigured(NotFoundError):
    kind = "NoDaysConfigured"
    default_message = "No day found in planner, add a day first"


class PlannerDateMissing(NotFoundError):
    kind = "PlannerDateMissing"
    default_message = "No planner start date, add a planner start date first"


class PlannerNotYetStarted(NotFoundError):
    kind = "PlannerNotYetStarted"
    default_message = "Planner will start soon"


# ----------------------- Conflicts -----------------------
class DayAlreadyExists(ConflictError):
    kind = "DayAlreadyExists"
    default_message = "A day with this name already exists"


class ExerciseAlreadyExists(ConflictError):
    kind = "ExerciseAlreadyExists"
    default_message = "This exercise already exists in planner"


class EmailAlreadyRegistered(ConflictError):
    kind = "EmailAlreadyRegistered"
    default_message = "Email already registered"


# ----------------------- Auth -----------------------
class InvalidToken(AuthError):
    kind = "InvalidToken"
    default_message = "Invalid token"


class TokenExpired(AuthError):
    kind = "TokenExpired"
    default_message = "Token expired"


class InvalidCredentials(AuthError):
    kind = "InvalidCredentials"
    default_message = "Incorrect email or password"
