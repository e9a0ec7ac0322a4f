import base64
import binascii
import hashlib
import hmac
import json
import os
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext

from database import get_db, to_object_id
from errors import InvalidToken, TokenExpired

# ENV
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/users/login")
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# Small HS256 JWT helpers
def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(signing_input: bytes, key: str) -> bytes:
    return hmac.new(key.encode(), signing_input, hashlib.sha256).digest()


def jwt_encode(payload: dict, key: str) -> str:
    header = {"alg": ALGORITHM, "typ": "JWT"}
    header_b64 = _b64url_encode(json.dumps(header, separators=(",", ":")).encode())
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode())
    sig = _sign(f"{header_b64}.{payload_b64}".encode(), key)
    return f"{header_b64}.{payload_b64}.{_b64url_encode(sig)}"


def jwt_decode(token: str, key: str) -> dict:
    try:
        header_b64, payload_b64, sig_b64 = token.split(".")
        header = json.loads(_b64url_decode(header_b64))
        signature = _b64url_decode(sig_b64)
    except (ValueError, binascii.Error):
        raise InvalidToken("Invalid token format")
    if not isinstance(header, dict) or header.get("alg") != ALGORITHM:
        raise InvalidToken("Invalid token format")
    expected_sig = _sign(f"{header_b64}.{payload_b64}".encode(), key)
    if not hmac.compare_digest(expected_sig, signature):
        raise InvalidToken("Invalid token signature")
    try:
        payload = json.loads(_b64url_decode(payload_b64))
    except (ValueError, binascii.Error):
        raise InvalidToken("Invalid token format")
    if not isinstance(payload, dict):
        raise InvalidToken("Invalid token format")
    exp = payload.get("exp")
    if exp is not None and time.time() > exp:
        raise TokenExpired()
    return payload


# ----------------------- Utils -----------------------

def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None):
    issued = datetime.now(timezone.utc)
    expire_dt = issued + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    # iat in microseconds keeps tokens issued within the same second distinct
    payload = {"sub": user_id, "iat": int(issued.timestamp() * 1_000_000), "exp": int(expire_dt.timestamp())}
    return jwt_encode(payload, SECRET_KEY)


def decode_access_token(token: str):
    return jwt_decode(token, SECRET_KEY)


def get_current_user(token: str = Depends(oauth2_scheme), db=Depends(get_db)):
    payload = decode_access_token(token)
    user_id = payload.get("sub")
    if not isinstance(user_id, str):
        raise InvalidToken()
    oid = to_object_id(user_id)
    user = db.user.find_one({"_id": oid}) if oid else None
    if user is None:
        raise InvalidToken("Token refers to a user that no longer exists")
    if user.get("access_token") != token:
        raise InvalidToken("Token is no longer valid, please login again")
    return user
