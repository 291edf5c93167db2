"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the codefuture backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses. Errors raised by services are
rendered by one exception handler as `{"error": message}`.

Endpoints implemented:
- POST /api/signup, POST /api/login, POST /api/auth/social-demo
- GET /api/auth/{provider}/login, GET /api/auth/{provider}/callback
- GET /api/roadmap, POST /api/roadmap/generate
- POST /api/roadmap/progress, GET /api/roadmap/view
- POST /api/lesson-plan, GET|DELETE /api/courses
- POST /api/chat, POST /api/execute, POST /api/math
- GET|POST /api/community/posts
- POST /api/contact
- GET /health
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from sqlmodel import Session

from . import services
from .ai import AIClient
from .auth import get_current_user_id, get_optional_user_id, get_token_codec
from .config import Settings
from .database import Database, get_session
from .errors import AppError, AuthError, NotFoundError, UpstreamError, ValidationError
from .mailer import Mailer
from .middleware import cors_middleware, request_context_middleware
from .oauth import OAuthClient, build_providers
from .schemas import (
    AuthOut,
    ChatIn,
    ContactIn,
    ExecuteIn,
    LessonPlanIn,
    LoginIn,
    MathIn,
    PostIn,
    ProgressIn,
    RoadmapGenerateIn,
    SignupIn,
    SocialDemoIn,
)
from .tokens import TokenCodec

logger = logging.getLogger("codefuture.api")


def get_ai(request: Request) -> AIClient:
    return request.app.state.ai


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _parse_id(raw: Optional[str], label: str = "id") -> int:
    if not raw:
        raise ValidationError(f"Missing {label}")
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Invalid {label}")


def _oauth_provider(request: Request, provider: str) -> OAuthClient:
    client = request.app.state.oauth.get(provider)
    if client is None:
        raise NotFoundError(f"Unknown provider: {provider}")
    if not client.enabled:
        raise UpstreamError(f"{provider} login is not configured")
    return client


def create_app(
    settings: Optional[Settings] = None,
    ai_client: Optional[AIClient] = None,
    mailer: Optional[Mailer] = None,
    oauth_providers: Optional[Dict[str, OAuthClient]] = None,
) -> FastAPI:
    """Build the application and every component from one `Settings` object."""
    settings = settings or Settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    db = Database(settings.DATABASE_URL)
    db.connect()
    ai = ai_client or AIClient.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        db.close()
        if ai_client is None:
            ai.close()

    app = FastAPI(title="Code Anyone API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.tokens = TokenCodec.from_settings(settings)
    app.state.ai = ai
    app.state.mailer = mailer or Mailer.from_settings(settings)
    app.state.oauth = oauth_providers if oauth_providers is not None else build_providers(settings)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    _register_routes(app)

    # registered last so it is the outermost layer
    app.middleware("http")(request_context_middleware)
    app.middleware("http")(cors_middleware)
    return app


def _register_routes(app: FastAPI) -> None:
    @app.get("/health")
    def health():
        """Lightweight health check for uptime monitoring."""
        return {"status": "ok"}

    @app.post("/api/signup", response_model=AuthOut)
    def signup(payload: SignupIn, db: Session = Depends(get_session), tokens: TokenCodec = Depends(get_token_codec)):
        """Register a user and return `{token, user}`.

        400 when a field is missing, 409 when the email is taken.
        """
        return services.AuthService(db, tokens).signup(payload.name, payload.email, payload.password)

    @app.post("/api/login", response_model=AuthOut)
    def login(payload: LoginIn, db: Session = Depends(get_session), tokens: TokenCodec = Depends(get_token_codec)):
        """Authenticate with email/password and return a fresh `{token, user}`."""
        return services.AuthService(db, tokens).login(payload.email, payload.password)

    @app.post("/api/auth/social-demo", response_model=AuthOut)
    def social_login_demo(payload: SocialDemoIn, db: Session = Depends(get_session),
                          tokens: TokenCodec = Depends(get_token_codec)):
        """Simulate a social login for development: one demo account per provider."""
        if not payload.provider:
            raise ValidationError("Invalid request")
        email = f"demo.{payload.provider}@example.com"
        name = f"{payload.provider} User (Demo)"
        return services.AuthService(db, tokens).social_login(name, email, payload.provider)

    @app.get("/api/auth/{provider}/login")
    def oauth_login(provider: str, request: Request):
        """Redirect the browser to the provider's consent screen."""
        client = _oauth_provider(request, provider)
        return RedirectResponse(url=client.authorize_url(client.new_state()), status_code=307)

    @app.get("/api/auth/{provider}/callback")
    def oauth_callback(provider: str, request: Request, code: str = "", state: str = "",
                       db: Session = Depends(get_session), tokens: TokenCodec = Depends(get_token_codec),
                       settings: Settings = Depends(get_settings)):
        """Finish the OAuth flow and hand the token to the frontend via a redirect."""
        client = _oauth_provider(request, provider)
        client.check_state(state)
        name, email = client.fetch_identity(code)
        result = services.AuthService(db, tokens).social_login(name, email, provider)
        user = result["user"]
        query = urlencode({"token": result["token"], "user_id": user["id"], "name": user["name"], "email": user["email"]})
        return RedirectResponse(url=f"{settings.FRONTEND_URL}/login?{query}", status_code=307)

    @app.get("/api/roadmap")
    def get_roadmap(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_session),
                    ai: AIClient = Depends(get_ai)):
        """Return the caller's latest roadmap as `{found, data?}`."""
        return services.RoadmapService(db, ai).get_roadmap(user_id)

    @app.post("/api/roadmap/generate")
    def generate_roadmap(payload: RoadmapGenerateIn, user_id: int = Depends(get_current_user_id),
                         db: Session = Depends(get_session), ai: AIClient = Depends(get_ai)):
        plan_id = services.RoadmapService(db, ai).generate_custom_roadmap(
            user_id, payload.role, payload.experience, payload.goal, payload.other
        )
        return {"success": True, "plan_id": plan_id}

    @app.post("/api/roadmap/progress")
    def update_progress(payload: ProgressIn, db: Session = Depends(get_session), ai: AIClient = Depends(get_ai)):
        """Move a plan's cursor. Public: any caller knowing the plan id may update it."""
        ok = services.RoadmapService(db, ai).update_progress(payload.plan_id, payload.index)
        return {"success": ok}

    @app.get("/api/roadmap/view")
    def view_roadmap(id: Optional[str] = None, db: Session = Depends(get_session), ai: AIClient = Depends(get_ai)):
        """Public read of a single roadmap by id."""
        data = services.RoadmapService(db, ai).get_roadmap_by_id(_parse_id(id))
        return {"success": True, "data": data}

    @app.post("/api/lesson-plan")
    def lesson_plan(payload: LessonPlanIn, user_id: Optional[int] = Depends(get_optional_user_id),
                    db: Session = Depends(get_session), ai: AIClient = Depends(get_ai)):
        """Generate and store a lesson plan; anonymous callers get an unowned plan."""
        return services.CourseService(db, ai).generate_lesson_plan(user_id, payload.persona, payload.goals)

    @app.get("/api/courses")
    def list_courses(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_session),
                     ai: AIClient = Depends(get_ai)):
        return services.CourseService(db, ai).list_courses(user_id)

    @app.delete("/api/courses")
    def delete_course(id: Optional[str] = None, user_id: int = Depends(get_current_user_id),
                      db: Session = Depends(get_session), ai: AIClient = Depends(get_ai)):
        services.CourseService(db, ai).delete_course(user_id, _parse_id(id, "id parameter"))
        return {"status": "deleted"}

    @app.post("/api/chat")
    def chat(payload: ChatIn, ai: AIClient = Depends(get_ai)):
        return services.TutorService(ai).chat(payload.persona, payload.current_code, payload.message, payload.history)

    @app.post("/api/execute")
    def execute(payload: ExecuteIn, ai: AIClient = Depends(get_ai)):
        """Simulated code execution: the AI plays the interpreter."""
        return services.TutorService(ai).execute(payload.code, payload.language)

    @app.post("/api/math")
    def math(payload: MathIn):
        return {"result": payload.a + payload.b}

    @app.get("/api/community/posts")
    def list_posts(db: Session = Depends(get_session)):
        return services.CommunityService(db).list_posts()

    @app.post("/api/community/posts")
    def create_post(payload: PostIn, user_id: Optional[int] = Depends(get_optional_user_id),
                    db: Session = Depends(get_session)):
        if user_id is None:
            raise AuthError("Unauthorized")
        return services.CommunityService(db).create_post(user_id, payload.title, payload.content, payload.topic)

    @app.post("/api/contact", status_code=201)
    def contact(payload: ContactIn, request: Request, user_id: Optional[int] = Depends(get_optional_user_id),
                db: Session = Depends(get_session), ai: AIClient = Depends(get_ai),
                settings: Settings = Depends(get_settings)):
        """Store a contact-form submission, attributed to the caller when signed in."""
        svc = services.ContactService(db, ai, request.app.state.mailer, settings.ADMIN_EMAIL)
        return svc.submit(user_id, payload.first_name, payload.last_name, payload.email, payload.message)


# served by uvicorn: codefuture.main:app
app = create_app()
