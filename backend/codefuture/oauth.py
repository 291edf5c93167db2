"""OAuth2 authorization-code login against Google and GitHub.

Each provider client only knows how to build the authorize URL and how
to turn a callback `code` into a `(name, email)` pair; account creation
and token issuance go through the same path as signup.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

import httpx
import jwt

from .errors import UpstreamError, ValidationError

logger = logging.getLogger("codefuture.oauth")

STATE_TTL_SECONDS = 600


@dataclass
class ProviderConfig:
    name: str
    client_id: str
    client_secret: str
    redirect_url: str
    authorize_url: str
    token_url: str
    userinfo_url: str
    scopes: List[str]


class OAuthClient:
    def __init__(self, config: ProviderConfig, state_secret: str, transport: Optional[httpx.BaseTransport] = None):
        self.config = config
        self.state_secret = state_secret
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.config.client_id and self.config.client_secret)

    def new_state(self) -> str:
        payload = {"p": self.config.name, "n": secrets.token_urlsafe(12), "exp": int(time.time()) + STATE_TTL_SECONDS}
        return jwt.encode(payload, self.state_secret, algorithm="HS256")

    def check_state(self, state: str) -> None:
        try:
            payload = jwt.decode(state or "", self.state_secret, algorithms=["HS256"])
        except jwt.PyJWTError as exc:
            raise ValidationError("Invalid OAuth state") from exc
        if payload.get("p") != self.config.name:
            raise ValidationError("Invalid OAuth state")

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_url,
            "response_type": "code",
            "scope": " ".join(self.config.scopes),
            "access_type": "offline",
            "state": state,
        }
        return f"{self.config.authorize_url}?{urlencode(params)}"

    def fetch_identity(self, code: str) -> Tuple[str, str]:
        """Exchange `code` for an access token and return the user's (name, email)."""
        if not code:
            raise ValidationError("Missing code")
        try:
            with httpx.Client(timeout=10, transport=self._transport) as client:
                token_resp = client.post(
                    self.config.token_url,
                    data={
                        "code": code,
                        "client_id": self.config.client_id,
                        "client_secret": self.config.client_secret,
                        "redirect_uri": self.config.redirect_url,
                        "grant_type": "authorization_code",
                    },
                    headers={"Accept": "application/json"},
                )
                token_resp.raise_for_status()
                access_token = token_resp.json().get("access_token")
                if not access_token:
                    raise UpstreamError("Failed to exchange token")
                info_resp = client.get(
                    self.config.userinfo_url,
                    headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
                )
                info_resp.raise_for_status()
                info = info_resp.json()
        except httpx.HTTPError as exc:
            logger.warning("%s oauth exchange failed: %s", self.config.name, exc)
            raise UpstreamError("Failed to exchange token") from exc
        return self._identity(info)

    def _identity(self, info: dict) -> Tuple[str, str]:
        if self.config.name == "github":
            login = info.get("login") or ""
            # private GitHub emails are not returned by /user
            email = info.get("email") or f"{login}@github.com"
            name = info.get("name") or login
            return name, email
        email = info.get("email")
        if not email:
            raise UpstreamError("Failed to get user info")
        return info.get("name") or email, email


def build_providers(settings) -> Dict[str, OAuthClient]:
    base = settings.CALLBACK_URL_BASE.rstrip("/")
    google = ProviderConfig(
        name="google",
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        redirect_url=f"{base}/google/callback",
        authorize_url="https://accounts.google.com/o/oauth2/auth",
        token_url="https://oauth2.googleapis.com/token",
        userinfo_url="https://www.googleapis.com/oauth2/v2/userinfo",
        scopes=[
            "https://www.googleapis.com/auth/userinfo.email",
            "https://www.googleapis.com/auth/userinfo.profile",
        ],
    )
    github = ProviderConfig(
        name="github",
        client_id=settings.GITHUB_CLIENT_ID,
        client_secret=settings.GITHUB_CLIENT_SECRET,
        redirect_url=f"{base}/github/callback",
        authorize_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        userinfo_url="https://api.github.com/user",
        scopes=["user:email"],
    )
    return {
        "google": OAuthClient(google, settings.JWT_SECRET),
        "github": OAuthClient(github, settings.JWT_SECRET),
    }
