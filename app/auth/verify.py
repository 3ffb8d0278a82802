"""
verify.py
---------
Purpose:
    JWT verification against the auth provider's JWKS endpoint.

Notes:
    - Accepts ES256 and RS256 signed tokens.
    - The JWKS client is created on first use and caches signing keys.
    - Provides `auth_dependency` for protected routes.
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from app.config import settings

ALLOWED_ALGORITHMS = ["ES256", "RS256"]
PLATFORM_ADMIN_ROLE = "platform_admin"

_jwk_client: PyJWKClient | None = None
_security = HTTPBearer()


def _get_jwk_client() -> PyJWKClient:
    global _jwk_client
    if _jwk_client is None:
        if not settings.AUTH_JWKS_URL:
            raise RuntimeError("AUTH_JWKS_URL is not configured")
        _jwk_client = PyJWKClient(settings.AUTH_JWKS_URL)
    return _jwk_client


def verify_jwt(token: str) -> dict:
    try:
        signing_key = _get_jwk_client().get_signing_key_from_jwt(token)
        decoded = jwt.decode(
            token,
            signing_key.key,
            algorithms=ALLOWED_ALGORITHMS,
            audience=settings.AUTH_AUDIENCE,
            options={"verify_exp": True},
        )
        return decoded
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    token = credentials.credentials
    return verify_jwt(token)


def is_platform_admin(claims: dict) -> bool:
    """Platform admins are listed by id in settings or carry the role in app_metadata."""
    user_id = claims.get("sub")
    if user_id and user_id in settings.platform_admin_ids():
        return True
    app_metadata = claims.get("app_metadata") or {}
    return app_metadata.get("role") == PLATFORM_ADMIN_ROLE
