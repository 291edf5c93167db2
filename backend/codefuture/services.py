"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and the external collaborators (AI client, mailer). Services are
intentionally thin: they validate input, execute domain logic, persist
via repositories and raise `errors.AppError` subclasses for the
controller layer to render.
"""

import html
import json
import logging
import secrets
from datetime import datetime
from typing import Any, List, Optional

from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .ai import AIClient
from .errors import AuthError, NotFoundError, UpstreamError, ValidationError
from .mailer import Mailer
from .schemas import UserOut
from .tokens import TokenCodec

logger = logging.getLogger("codefuture.services")

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def serialize_user(user: models.User) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")


def parse_content(content: str) -> Any:
    """Parse a stored curriculum blob, falling back to the raw string."""
    try:
        return json.loads(content)
    except (TypeError, ValueError) as exc:
        logger.warning("plan content is not JSON (%d chars): %s", len(content or ""), exc)
        return content


def plan_view(plan: models.LessonPlan) -> dict:
    return {
        "plan_id": plan.id,
        "content": parse_content(plan.content),
        "current_index": plan.current_lesson_index or 0,
    }


class AuthService:
    """Signup, login and social login, all ending in an issued token."""
    def __init__(self, session: Optional[Session], tokens: TokenCodec):
        self.session = session
        self.tokens = tokens
        self.user_repo = repositories.UserRepository(session)

    def _auth_payload(self, user: models.User) -> dict:
        return {"token": self.tokens.issue(user.id), "user": serialize_user(user)}

    def signup(self, name: str, email: str, password: str) -> dict:
        """Create a user with a hashed password and return `{token, user}`.

        Raises `ValidationError` for missing fields and `ConflictError`
        when the email is already registered.
        """
        if not name or not email or not password:
            raise ValidationError("Name, email, and password are required")
        user = models.User(name=name, email=email, password_hash=PWD_CTX.hash(password))
        user = self.user_repo.create(user)
        logger.info("user %s signed up", user.id)
        return self._auth_payload(user)

    def login(self, email: str, password: str) -> dict:
        user = self.user_repo.get_by_email(email)
        if not user or not password or not PWD_CTX.verify(password, user.password_hash):
            raise AuthError("Invalid credentials")
        return self._auth_payload(user)

    def social_login(self, name: str, email: str, provider: str) -> dict:
        """Get or create the user behind a social identity and issue a token.

        Social accounts get a random password hash nobody knows, so they
        can only sign in through their provider.
        """
        user = self.user_repo.get_by_email(email)
        if user is None:
            placeholder = PWD_CTX.hash(secrets.token_urlsafe(32))
            user = self.user_repo.create(models.User(name=name, email=email, password_hash=placeholder))
            logger.info("created %s social user %s", provider, user.id)
        return self._auth_payload(user)


class RoadmapService:
    """Read and advance the progress cursor of a user's roadmap."""
    def __init__(self, session: Optional[Session], ai: AIClient):
        self.session = session
        self.ai = ai
        self.plan_repo = repositories.LessonPlanRepository(session)

    def get_roadmap(self, user_id: int) -> dict:
        plan = self.plan_repo.get_latest_for_user(user_id)
        if plan is None:
            return {"found": False}
        return {"found": True, "data": plan_view(plan)}

    def generate_custom_roadmap(self, user_id: int, role: str, experience: str, goal: str, other: str) -> int:
        """Generate a roadmap with the AI and store it for `user_id`.

        Nothing is saved when the AI call fails.
        """
        logger.info("generating roadmap for user %s: role=%s experience=%s", user_id, role, experience)
        try:
            content = self.ai.generate_full_roadmap(role, experience, goal, other)
        except UpstreamError as exc:
            raise UpstreamError(f"Failed to generate roadmap: {exc.message}") from exc
        persona = f"{role} ({experience})"
        return self.plan_repo.save(user_id, persona, goal, content)

    def update_progress(self, plan_id: int, index: int) -> bool:
        self.plan_repo.update_progress(plan_id, index)
        return True

    def get_roadmap_by_id(self, plan_id: int) -> dict:
        plan = self.plan_repo.get(plan_id)
        if plan is None:
            raise NotFoundError("Roadmap not found")
        return plan_view(plan)


class CourseService:
    """Lesson-plan generation and the per-user course list."""
    def __init__(self, session: Optional[Session], ai: AIClient):
        self.session = session
        self.ai = ai
        self.plan_repo = repositories.LessonPlanRepository(session)

    def generate_lesson_plan(self, user_id: Optional[int], persona: str, goals: str) -> dict:
        content = self.ai.generate_lesson_plan(persona, goals)
        plan_id = self.plan_repo.save(user_id, persona, goals, content)
        return {"id": plan_id, "text": content}

    def list_courses(self, user_id: int) -> List[dict]:
        return [
            {"id": p.id, "persona": p.persona, "goals": p.goals, "createdAt": p.created_at.isoformat()}
            for p in self.plan_repo.list_for_user(user_id)
        ]

    def delete_course(self, user_id: int, course_id: int) -> None:
        # deleting someone else's course is a silent no-op, as is deleting a missing one
        self.plan_repo.delete_for_owner(user_id, course_id)


class TutorService:
    def __init__(self, ai: AIClient):
        self.ai = ai

    def chat(self, persona: str, current_code: str, message: str, history) -> dict:
        return {"text": self.ai.chat(persona, current_code, message, history)}

    def execute(self, code: str, language: str) -> dict:
        return {"text": self.ai.execute_code(code, language)}


class CommunityService:
    def __init__(self, session: Optional[Session]):
        self.session = session
        self.post_repo = repositories.PostRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def list_posts(self) -> List[models.Post]:
        return self.post_repo.list_recent()

    def create_post(self, user_id: int, title: str, content: str, topic: str) -> models.Post:
        user = self.user_repo.get(user_id)
        if user is None:
            raise AuthError("User not found")
        if not title or not content:
            raise ValidationError("Title and content are required")
        post = models.Post(user_id=user_id, author_name=user.name, title=title, content=content, topic=topic)
        return self.post_repo.create(post)


class ContactService:
    """Store contact-form submissions and notify the admin and the sender."""
    def __init__(self, session: Optional[Session], ai: AIClient, mailer: Mailer, admin_email: str):
        self.session = session
        self.ai = ai
        self.mailer = mailer
        self.admin_email = admin_email
        self.contact_repo = repositories.ContactRepository(session)

    def submit(self, user_id: Optional[int], first_name: str, last_name: str, email: str, message: str) -> dict:
        if not message:
            raise ValidationError("Message is required")
        submission = models.ContactSubmission(
            user_id=user_id, first_name=first_name, last_name=last_name, email=email.strip(), message=message,
        )
        self.contact_repo.create(submission)

        try:
            draft = self.ai.generate_email_response(first_name, message)
        except UpstreamError as exc:
            logger.warning("could not draft contact reply: %s", exc.message)
            draft = ""
        draft = draft or "Could not generate draft."

        sender = str(user_id) if user_id is not None else "Guest"
        safe_message = html.escape(message).replace("\n", "<br>")
        safe_draft = html.escape(draft).replace("\n", "<br>")
        admin_body = (
            f"<p><b>From:</b> {html.escape(first_name)} {html.escape(last_name)} ({sender})</p>"
            f"<p><b>Email:</b> {html.escape(email)}</p>"
            f"<p>{safe_message}</p>"
            f"<p><i>Suggested reply:</i><br>{safe_draft}</p>"
            f"<p>{datetime.now().strftime('%b %d, %Y at %H:%M')}</p>"
        )
        if self.admin_email:
            self.mailer.send_html([self.admin_email], f"Inquiry from {first_name} {last_name} [{sender}]", admin_body)
        else:
            logger.warning("ADMIN_EMAIL is not set; skipping admin notification")
        if submission.email:
            confirmation = f"<p>Hi {html.escape(first_name)},</p><p>We received your message:</p><p>{safe_message}</p>"
            self.mailer.send_html([submission.email], "We received your message - Code Anyone", confirmation)
        return {"status": "success", "message": "Ticket created"}
