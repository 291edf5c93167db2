"""Application settings and validation."""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE = Path(__file__).resolve().parent.parent
DEFAULT_JWT_SECRET = "dev_secret_key_change_in_prod"

load_dotenv(BASE.parent / ".env")
load_dotenv()


class Settings:
    ENV: str
    LOG_LEVEL: str
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    ALLOW_INSECURE_JWT: bool
    AI_API_KEY: str
    AI_BASE_URL: str
    AI_MODEL: str
    AI_TIMEOUT_SECONDS: float
    FRONTEND_URL: str
    CALLBACK_URL_BASE: str
    GOOGLE_CLIENT_ID: str
    GOOGLE_CLIENT_SECRET: str
    GITHUB_CLIENT_ID: str
    GITHUB_CLIENT_SECRET: str
    SMTP_HOST: str
    SMTP_PORT: int
    SMTP_USER: str
    SMTP_PASS: str
    ADMIN_EMAIL: str

    def __init__(self, **overrides):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'codefuture.db'}")
        # unset secret falls back to a fixed development key; _validate refuses it outside dev
        self.JWT_SECRET = os.getenv("JWT_SECRET") or DEFAULT_JWT_SECRET
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "72"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.AI_API_KEY = os.getenv("GEMINI_API_KEY", "")
        self.AI_BASE_URL = os.getenv("AI_BASE_URL", "https://openrouter.ai/api/v1/chat/completions")
        self.AI_MODEL = os.getenv("AI_MODEL", "google/gemini-flash-1.5")
        self.AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "60"))
        self.FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3001")
        self.CALLBACK_URL_BASE = os.getenv("CALLBACK_URL_BASE", "http://localhost:8081/api/auth")
        self.GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
        self.GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
        self.GITHUB_CLIENT_ID = os.getenv("GITHUB_CLIENT_ID", "")
        self.GITHUB_CLIENT_SECRET = os.getenv("GITHUB_CLIENT_SECRET", "")
        self.SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
        self.SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
        self.SMTP_USER = os.getenv("SMTP_USER", "")
        self.SMTP_PASS = os.getenv("SMTP_PASS", "")
        self.ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", self.SMTP_USER)
        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"unknown setting: {key}")
            setattr(self, key, value)
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_USER and self.SMTP_PASS)
