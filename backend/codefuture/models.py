"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Table names are `users`, `lesson_plans`, `posts` and
`contact_submissions`, so existing database files keep working.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `email`: unique login, compared exactly as stored
    - `password_hash`: hashed password string (never store plaintext,
      never serialize outward)
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)

class LessonPlan(SQLModel, table=True):
    """An AI-generated curriculum (a "roadmap") and the progress cursor through it.

    `user_id` is `None` for plans generated anonymously. `content` is the
    serialized curriculum exactly as the AI returned it; it is only parsed
    when a response is formatted. `current_lesson_index` is the only field
    updated after creation.
    """
    __tablename__ = "lesson_plans"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    persona: str = ""
    goals: str = ""
    content: str = ""
    current_lesson_index: int = Field(default=0)
    created_at: datetime = Field(default_factory=_utcnow)

class Post(SQLModel, table=True):
    """A community post."""
    __tablename__ = "posts"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id")
    author_name: str
    title: str
    content: str
    topic: str = ""
    likes: int = 0
    created_at: datetime = Field(default_factory=_utcnow)

class ContactSubmission(SQLModel, table=True):
    __tablename__ = "contact_submissions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id")
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    message: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
