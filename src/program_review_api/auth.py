"""
Authentication module for Clerk JWT and API key validation.
Provides FastAPI dependencies for securing endpoints.
"""
import os
import logging
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, Header

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainerContext:
    """
    The authenticated trainer for one request.

    Built fresh per request from the credentials; nothing about the trainer
    is cached between requests. Use :meth:`refresh` after a profile change.
    """
    user_id: str
    display_name: Optional[str] = None

    def refresh(self, display_name: Optional[str]) -> "TrainerContext":
        return replace(self, display_name=display_name)


def _clerk_jwks_url() -> str:
    domain = os.getenv("CLERK_DOMAIN", "")
    return f"https://{domain}/.well-known/jwks.json" if domain else ""


@lru_cache(maxsize=4)
def _jwks_client_for(url: str) -> jwt.PyJWKClient:
    # PyJWKClient caches fetched signing keys per instance
    return jwt.PyJWKClient(url)


def get_jwks_client() -> Optional[jwt.PyJWKClient]:
    """Return the shared JWKS client for Clerk JWT validation, or None if not configured."""
    url = _clerk_jwks_url()
    if not url:
        return None
    return _jwks_client_for(url)


def validate_api_key(api_key: str) -> str:
    """
    Validate API key and return user_id.

    API key format options:
    - Simple: "sk_test_abc123" -> returns "admin"
    - With user: "sk_test_abc123:user_12345" -> returns "user_12345"
    """
    valid_keys = [k.strip() for k in os.getenv("API_KEYS", "").split(",") if k.strip()]

    if not valid_keys:
        logger.warning("No API keys configured (API_KEYS env var empty)")
        raise HTTPException(status_code=401, detail="API key authentication not configured")

    key_part = api_key.split(":")[0]

    if key_part not in valid_keys:
        raise HTTPException(status_code=401, detail="Invalid API key")

    # Extract user_id if provided (format: "key:user_id")
    if ":" in api_key:
        return api_key.split(":", 1)[1]

    return "admin"


def decode_jwt(authorization: str) -> Dict[str, Any]:
    """Validate a Clerk bearer token and return its claims."""
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    token = authorization.split(" ", 1)[1]
    jwks_client = get_jwks_client()

    if not jwks_client:
        raise HTTPException(
            status_code=500,
            detail="JWT validation not configured (missing CLERK_DOMAIN)"
        )

    try:
        signing_key = jwks_client.get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            options={"verify_aud": False}
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")

    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Token missing user ID")
    return payload


def _display_name(claims: Dict[str, Any]) -> Optional[str]:
    for key in ("name", "full_name", "username", "email"):
        value = claims.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


async def get_trainer_context(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> TrainerContext:
    """
    Authenticate via API key OR Clerk JWT.

    Usage:
        @router.get("/protected")
        async def protected_route(trainer: TrainerContext = Depends(get_trainer_context)):
            return {"user_id": trainer.user_id}
    """
    if x_api_key:
        return TrainerContext(user_id=validate_api_key(x_api_key))

    if authorization:
        claims = decode_jwt(authorization)
        return TrainerContext(user_id=claims["sub"], display_name=_display_name(claims))

    raise HTTPException(
        status_code=401,
        detail="Missing authentication. Provide Authorization header or X-API-Key."
    )
