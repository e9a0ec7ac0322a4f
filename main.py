import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional, List

from fastapi import FastAPI, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field
from pymongo.errors import PyMongoError

import cascade
import days
import exercises
import planner
import users
from database import ensure_indexes, get_db, public
from errors import AuthError, PlannerError
from schemas import ExerciseDetails, ExerciseUpdate, Video
from security import get_current_user

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes(get_db())
    except PyMongoError as e:
        logger.warning("Could not ensure indexes: %s", e)
    yield


app = FastAPI(title="Fitness Planner API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PlannerError)
async def planner_error_handler(request: Request, exc: PlannerError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.kind, exc_info=exc.__cause__)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


# ----------------------- Models -----------------------
class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserOut(BaseModel):
    id: str
    name: str
    email: EmailStr
    planner_start_date: Optional[datetime] = None


class AuthOut(BaseModel):
    access_token: str
    token_type: str
    user: UserOut


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None


class PasswordChange(BaseModel):
    old_password: str
    new_password: str


class PlannerDateIn(BaseModel):
    planner_start_date: datetime


class DayIn(BaseModel):
    day_name: str


class DayOut(BaseModel):
    id: str
    day_name: str
    position: int
    created_at: Optional[datetime] = None


class ExerciseIn(BaseModel):
    day_ids: List[str] = Field(default_factory=list)
    exercise_details: Optional[ExerciseDetails] = None
    video_recommendations: List[Video] = Field(default_factory=list)


class ExerciseOut(BaseModel):
    id: str
    day_id: str
    exercise_details: ExerciseDetails
    video_recommendations: List[Video]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TodayOut(BaseModel):
    day: DayOut
    exercises: List[ExerciseOut]


def _uid(user: dict) -> str:
    return str(user["_id"])


# ----------------------- Users -----------------------
@app.post("/users/register", response_model=AuthOut, status_code=201)
def register(body: UserCreate, db=Depends(get_db)):
    return users.register(db, body.name, body.email, body.password)


@app.post("/users/login", response_model=AuthOut)
def login(body: LoginRequest, db=Depends(get_db)):
    return users.login(db, body.email, body.password)


@app.post("/users/logout")
def logout(user: dict = Depends(get_current_user), db=Depends(get_db)):
    users.logout(db, _uid(user))
    return {"ok": True}


@app.get("/users/me", response_model=UserOut)
def me(user: dict = Depends(get_current_user)):
    return public(user)


@app.patch("/users/profile", response_model=UserOut)
def update_profile(body: ProfileUpdate, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return users.update_profile(db, _uid(user), body.name, body.email)


@app.patch("/users/password", response_model=AuthOut)
def change_password(body: PasswordChange, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return users.change_password(db, _uid(user), body.old_password, body.new_password)


@app.post("/users/planner-date", response_model=UserOut)
def add_planner_date(body: PlannerDateIn, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return planner.set_planner_start(db, _uid(user), body.planner_start_date)


@app.delete("/users/me")
def delete_user(user: dict = Depends(get_current_user), db=Depends(get_db)):
    return cascade.delete_user(db, _uid(user))


# ----------------------- Days -----------------------
@app.post("/days", response_model=DayOut, status_code=201)
def add_day(body: DayIn, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return days.add_day(db, _uid(user), body.day_name)


@app.get("/days", response_model=List[DayOut])
def list_days(user: dict = Depends(get_current_user), db=Depends(get_db)):
    return days.list_days(db, _uid(user))


@app.patch("/days/{day_id}", response_model=DayOut)
def rename_day(day_id: str, body: DayIn, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return days.rename_day(db, _uid(user), day_id, body.day_name)


@app.delete("/days/{day_id}", response_model=DayOut)
def delete_day(day_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return cascade.delete_day(db, _uid(user), day_id)


# ----------------------- Exercises -----------------------
@app.post("/exercises", response_model=List[ExerciseOut], status_code=201)
def add_exercise(body: ExerciseIn, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return exercises.add_exercise(
        db, _uid(user), body.day_ids, body.exercise_details, body.video_recommendations
    )


@app.get("/exercises/today", response_model=TodayOut)
def todays_exercises(user: dict = Depends(get_current_user), db=Depends(get_db)):
    return planner.todays_exercises(db, _uid(user))


@app.get("/days/{day_id}/exercises", response_model=List[ExerciseOut])
def list_day_exercises(
    day_id: str,
    offset: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return exercises.list_day_exercises(db, _uid(user), day_id, offset, limit)


@app.patch("/days/{day_id}/exercises/{exercise_id}", response_model=ExerciseOut)
def update_exercise(
    day_id: str,
    exercise_id: str,
    body: ExerciseUpdate,
    user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return exercises.update_exercise(db, _uid(user), day_id, exercise_id, body)


@app.delete("/days/{day_id}/exercises/{exercise_id}", response_model=ExerciseOut)
def delete_exercise(day_id: str, exercise_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return exercises.delete_exercise(db, _uid(user), day_id, exercise_id)


# ----------------------- Health -----------------------
@app.get("/")
def root():
    return {"message": "Fitness Planner API running"}


@app.get("/test")
def test_database(db=Depends(get_db)):
    info = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        info["database_name"] = db.name
        info["collections"] = db.list_collection_names()[:10]
        info["database"] = "✅ Connected & Working"
        info["connection_status"] = "Connected"
    except PyMongoError as e:
        info["database"] = f"Error: {str(e)[:80]}"
    return info


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
