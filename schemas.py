"""
Database Schemas for the Fitness Planner

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase of the class name.
"""
from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime


class Video(BaseModel):
    video_id: Optional[str] = Field(None, description="External video id")
    title: Optional[str] = None
    thumbnail: Optional[str] = Field(None, description="Thumbnail URL")


class ExerciseDetails(BaseModel):
    # an unset id is a value too: a day holds at most one exercise without an id
    id: Optional[str] = Field(None, description="External exercise id, unique per day")
    name: Optional[str] = None
    body_part: Optional[str] = None
    target: Optional[str] = Field(None, description="Target muscle")
    equipment: Optional[str] = None
    gif_url: Optional[str] = None
    reps: int = Field(1, ge=1)
    sets: int = Field(1, ge=1)
    instructions: List[str] = Field(default_factory=list)


class ExerciseDetailsPatch(BaseModel):
    """Partial exercise details. Only fields the caller sets are merged."""

    id: Optional[str] = None
    name: Optional[str] = None
    body_part: Optional[str] = None
    target: Optional[str] = None
    equipment: Optional[str] = None
    gif_url: Optional[str] = None
    reps: Optional[int] = Field(None, ge=1)
    sets: Optional[int] = Field(None, ge=1)
    instructions: Optional[List[str]] = None

    @field_validator("reps", "sets", "instructions")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class ExerciseUpdate(BaseModel):
    exercise_details: Optional[ExerciseDetailsPatch] = None
    removed_video_ids: List[str] = Field(default_factory=list, description="Removed before additions")
    added_videos: List[Video] = Field(default_factory=list)


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="Password hash (bcrypt)")
    access_token: str = Field("", description="Currently issued bearer token")
    planner_start_date: Optional[datetime] = Field(None, description="Unset until the planner is started")
    created_at: Optional[datetime] = None


class Day(BaseModel):
    user_id: str = Field(..., description="Owner user _id as string")
    day_name: str = Field(..., description="Unique per user")
    position: int = Field(..., ge=0, description="Rotation order, assigned at creation")
    created_at: Optional[datetime] = None


class Exercise(BaseModel):
    user_id: str = Field(..., description="Owner user _id as string")
    day_id: str = Field(..., description="Day _id as string")
    exercise_details: ExerciseDetails
    video_recommendations: List[Video] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
