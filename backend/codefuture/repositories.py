"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
lesson plans, posts, contact submissions). Repositories return SQLModel
objects and perform commits/refreshes where appropriate.

A repository built with `session=None` is the degraded no-op store used
when the database was unreachable at startup: lookups return `None` or
empty lists and writes are skipped.
"""

import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from . import models
from .errors import ConflictError, StorageError

logger = logging.getLogger("codefuture.store")


class _Repository:
    def __init__(self, session: Optional[Session]):
        self.session = session

    @property
    def degraded(self) -> bool:
        return self.session is None

    def _commit(self, what: str):
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("%s failed: %s", what, exc)
            raise StorageError(f"{what} failed") from exc


class UserRepository(_Repository):
    """Create and look up `User` records. Users are never updated or deleted here."""

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance.

        Raises `ConflictError` when the email is already registered and
        `StorageError` for any other failure, including a degraded store.
        """
        if self.degraded:
            raise StorageError("database not connected")
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError("email already exists") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("create user failed: %s", exc)
            raise StorageError("error creating user") from exc
        self.session.refresh(user)
        return user

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by exact email or `None` if not found."""
        if self.degraded:
            return None
        stmt = select(models.User).where(models.User.email == email)
        try:
            return self.session.exec(stmt).first()
        except SQLAlchemyError as exc:
            raise StorageError("error finding user") from exc

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        if self.degraded:
            return None
        try:
            return self.session.get(models.User, user_id)
        except SQLAlchemyError as exc:
            raise StorageError("error finding user") from exc


class LessonPlanRepository(_Repository):
    """Persist lesson plans and their progress cursor."""

    def save(self, user_id: Optional[int], persona: str, goals: str, content: str) -> int:
        """Insert a plan with its cursor at 0 and return the new id (0 when degraded)."""
        if self.degraded:
            return 0
        plan = models.LessonPlan(user_id=user_id, persona=persona, goals=goals, content=content)
        self.session.add(plan)
        self._commit("save lesson plan")
        self.session.refresh(plan)
        return plan.id

    def get_latest_for_user(self, user_id: int) -> Optional[models.LessonPlan]:
        """Return the most recently created plan owned by `user_id`."""
        if self.degraded:
            return None
        stmt = (
            select(models.LessonPlan)
            .where(models.LessonPlan.user_id == user_id)
            .order_by(col(models.LessonPlan.created_at).desc(), col(models.LessonPlan.id).desc())
            .limit(1)
        )
        try:
            return self.session.exec(stmt).first()
        except SQLAlchemyError as exc:
            raise StorageError("error fetching lesson plan") from exc

    def get(self, plan_id: int) -> Optional[models.LessonPlan]:
        """Fetch a plan by id. There is no ownership check."""
        if self.degraded:
            return None
        try:
            return self.session.get(models.LessonPlan, plan_id)
        except SQLAlchemyError as exc:
            raise StorageError("error fetching lesson plan") from exc

    def update_progress(self, plan_id: int, index: int) -> None:
        """Overwrite the cursor of `plan_id` with `index`.

        A single UPDATE: no bounds check against the plan's lesson count,
        no ownership check, and concurrent writers race (last write wins).
        """
        if self.degraded:
            return
        stmt = update(models.LessonPlan).where(models.LessonPlan.id == plan_id).values(current_lesson_index=index)
        try:
            self.session.exec(stmt)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageError("update lesson progress failed") from exc
        self._commit("update lesson progress")

    def list_for_user(self, user_id: int) -> List[models.LessonPlan]:
        """List all plans owned by `user_id`, newest first."""
        if self.degraded:
            return []
        stmt = (
            select(models.LessonPlan)
            .where(models.LessonPlan.user_id == user_id)
            .order_by(col(models.LessonPlan.created_at).desc(), col(models.LessonPlan.id).desc())
        )
        try:
            return list(self.session.exec(stmt).all())
        except SQLAlchemyError as exc:
            raise StorageError("error fetching courses") from exc

    def delete_for_owner(self, user_id: int, plan_id: int) -> bool:
        """Delete `plan_id` only if `user_id` owns it. Returns whether a row was removed."""
        if self.degraded:
            return False
        plan = self.get(plan_id)
        if plan is None or plan.user_id != user_id:
            return False
        self.session.delete(plan)
        self._commit("delete course")
        return True


class PostRepository(_Repository):
    def create(self, post: models.Post) -> models.Post:
        if self.degraded:
            return post
        self.session.add(post)
        self._commit("create post")
        self.session.refresh(post)
        return post

    def list_recent(self) -> List[models.Post]:
        """Return every post, newest first."""
        if self.degraded:
            return []
        stmt = select(models.Post).order_by(col(models.Post.created_at).desc(), col(models.Post.id).desc())
        try:
            return list(self.session.exec(stmt).all())
        except SQLAlchemyError as exc:
            raise StorageError("error fetching posts") from exc


class ContactRepository(_Repository):
    def create(self, submission: models.ContactSubmission) -> models.ContactSubmission:
        if self.degraded:
            return submission
        self.session.add(submission)
        self._commit("save contact submission")
        self.session.refresh(submission)
        return submission
