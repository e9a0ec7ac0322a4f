from datetime import datetime, timezone
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import public
from errors import EmailAlreadyRegistered, InvalidCredentials, MissingData, SamePassword, UserNotFound
from planner import get_user
from schemas import User
from security import create_access_token, get_password_hash, verify_password


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def get_user_by_email(db, email: str):
    return db.user.find_one({"email": email})


def _issue_token(db, user_id) -> str:
    token = create_access_token(str(user_id))
    db.user.update_one({"_id": user_id}, {"$set": {"access_token": token}})
    return token


def register(db, name: str, email: str, password: str) -> dict:
    if any(_blank(v) for v in (name, email, password)):
        raise MissingData()
    if get_user_by_email(db, email):
        raise EmailAlreadyRegistered()

    user = User(
        name=name.strip(),
        email=email,
        password_hash=get_password_hash(password),
        created_at=datetime.now(timezone.utc),
    )
    doc = user.model_dump()
    try:
        doc["_id"] = db.user.insert_one(doc).inserted_id
    except DuplicateKeyError:
        raise EmailAlreadyRegistered()
    token = _issue_token(db, doc["_id"])
    return {"access_token": token, "token_type": "bearer", "user": public(doc)}


def login(db, email: str, password: str) -> dict:
    if _blank(email) or _blank(password):
        raise MissingData("Login credentials are missing")
    user = get_user_by_email(db, email)
    if not user:
        raise UserNotFound()
    if not verify_password(password, user.get("password_hash", "")):
        raise InvalidCredentials()
    token = _issue_token(db, user["_id"])
    return {"access_token": token, "token_type": "bearer", "user": public(user)}


def logout(db, user_id: str) -> None:
    user = get_user(db, user_id)
    db.user.update_one({"_id": user["_id"]}, {"$set": {"access_token": ""}})


def update_profile(db, user_id: str, name: Optional[str] = None, email: Optional[str] = None) -> dict:
    if _blank(name) and _blank(email):
        raise MissingData("Name and email are missing")
    user = get_user(db, user_id)

    changes = {}
    if not _blank(name):
        changes["name"] = name.strip()
    if not _blank(email) and email != user["email"]:
        if get_user_by_email(db, email):
            raise EmailAlreadyRegistered()
        changes["email"] = email
    if not changes:
        return public(user)

    try:
        updated = db.user.find_one_and_update(
            {"_id": user["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise EmailAlreadyRegistered()
    if updated is None:
        raise UserNotFound()
    return public(updated)


def change_password(db, user_id: str, old_password: str, new_password: str) -> dict:
    if _blank(old_password) or _blank(new_password):
        raise MissingData()
    if old_password == new_password:
        raise SamePassword()
    user = get_user(db, user_id)
    if not verify_password(old_password, user.get("password_hash", "")):
        raise InvalidCredentials("Old password is incorrect")

    db.user.update_one({"_id": user["_id"]}, {"$set": {"password_hash": get_password_hash(new_password)}})
    token = _issue_token(db, user["_id"])
    return {"access_token": token, "token_type": "bearer", "user": public(user)}
