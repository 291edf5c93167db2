"""Signed, time-bound identity tokens.

Tokens are HS256 JWTs carrying `user_id` and `exp`. They are stateless:
nothing is persisted, a token is valid exactly when its signature
checks out under the process secret and its expiry is in the future.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

logger = logging.getLogger("codefuture.tokens")


class InvalidTokenError(Exception):
    """Token is malformed, unsigned, tampered with or carries no user id."""


class ExpiredTokenError(InvalidTokenError):
    """Token signature is fine but its expiry has passed."""


class TokenCodec:
    def __init__(self, secret: str, algorithm: str = "HS256", expire_hours: int = 72):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_hours = expire_hours

    @classmethod
    def from_settings(cls, settings) -> "TokenCodec":
        return cls(settings.JWT_SECRET, settings.JWT_ALGORITHM, settings.JWT_EXPIRE_HOURS)

    def issue(self, user_id: int, now: Optional[datetime] = None) -> str:
        """Return a token for `user_id` expiring `expire_hours` after `now`."""
        now = now or datetime.now(timezone.utc)
        expire = now + timedelta(hours=self.expire_hours)
        payload = {"user_id": user_id, "exp": int(expire.timestamp())}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        """Decode `token` and return the user id it carries.

        Raises `ExpiredTokenError` or `InvalidTokenError`; callers facing
        clients should treat both the same.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            logger.info("rejected expired token")
            raise ExpiredTokenError("token expired") from exc
        except jwt.PyJWTError as exc:
            logger.info("rejected invalid token: %s", exc)
            raise InvalidTokenError("invalid token") from exc
        user_id = payload.get("user_id")
        # bool is an int subclass; a token with user_id=true is still garbage
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            logger.info("rejected token without a usable user_id")
            raise InvalidTokenError("invalid token payload")
        return user_id
