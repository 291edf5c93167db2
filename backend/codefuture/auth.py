"""Authentication dependencies (the request auth gate).

Two FastAPI dependencies resolve the caller's identity from an
`Authorization: Bearer <token>` header:

- `get_current_user_id` (required mode) raises `AuthError` (401) before
  the route body runs when the header is missing or the token does not
  verify.
- `get_optional_user_id` (optional mode) returns the user id or `None`
  and never rejects; routes that need identity check it themselves.

Preflight `OPTIONS` requests never reach identity checks: the CORS
middleware answers them, and both dependencies return `None` for them
if one slips through.
"""

import logging
from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import AuthError
from .tokens import ExpiredTokenError, InvalidTokenError, TokenCodec

logger = logging.getLogger("codefuture.auth")

bearer_scheme = HTTPBearer(auto_error=False)


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.tokens


def _resolve(credentials: Optional[HTTPAuthorizationCredentials], codec: TokenCodec) -> int:
    if credentials is None or not credentials.credentials:
        raise AuthError("Authorization header required")
    try:
        return codec.verify(credentials.credentials)
    except ExpiredTokenError:
        logger.debug("bearer token expired")
        raise AuthError("Invalid token")
    except InvalidTokenError:
        raise AuthError("Invalid token")


def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    codec: TokenCodec = Depends(get_token_codec),
) -> Optional[int]:
    """Return the authenticated user id or raise `AuthError`."""
    if request.method == "OPTIONS":
        return None
    request.state.user_id = _resolve(credentials, codec)
    return request.state.user_id


def get_optional_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    codec: TokenCodec = Depends(get_token_codec),
) -> Optional[int]:
    """Return the authenticated user id, or `None` on any auth problem."""
    if request.method == "OPTIONS" or credentials is None:
        return None
    try:
        request.state.user_id = _resolve(credentials, codec)
    except AuthError:
        return None
    return request.state.user_id
