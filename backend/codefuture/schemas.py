"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Request fields default to empty values so
that "missing" and "blank" are rejected by the same service-level checks.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class SignupIn(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""


class LoginIn(BaseModel):
    email: str = ""
    password: str = ""


class UserOut(BaseModel):
    """Public view of a user; the password hash is never part of it."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime


class AuthOut(BaseModel):
    """Authentication response containing a bearer token and the user."""
    token: str
    user: UserOut


class SocialDemoIn(BaseModel):
    provider: str = ""


class RoadmapGenerateIn(BaseModel):
    role: str = ""
    experience: str = ""
    goal: str = ""
    other: str = ""


class ProgressIn(BaseModel):
    """Cursor update for a plan. No upper bound is enforced on `index`.

    Both fields must be JSON integers: booleans and numeric strings are rejected.
    """
    plan_id: StrictInt
    index: StrictInt


class LessonPlanIn(BaseModel):
    persona: str = ""
    goals: str = ""


class ChatHistoryItem(BaseModel):
    role: str
    text: str


class ChatIn(BaseModel):
    message: str = ""
    history: List[ChatHistoryItem] = Field(default_factory=list)
    persona: str = ""
    current_code: str = Field(default="", alias="currentCode")

    model_config = ConfigDict(populate_by_name=True)


class ExecuteIn(BaseModel):
    code: str = ""
    language: str = "python"


class MathIn(BaseModel):
    a: float
    b: float


class PostIn(BaseModel):
    title: str = ""
    content: str = ""
    topic: str = ""


class ContactIn(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    message: str = ""
