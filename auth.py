"""
Credential checks and signed session tokens.

A session token is an HS256 JWT carrying the user's id, email and role.
Routes receive the decoded Identity (or None) through the
`current_identity` dependency; managers decide whether one is required.
"""

import os
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Tuple

import bcrypt
import jwt
import structlog
from fastapi import Header

from database import get_document, now
from errors import Unauthorized, ValidationError

logger = structlog.get_logger(__name__)

SESSION_SECRET = os.getenv("SESSION_SECRET")
if not SESSION_SECRET:
    # Tokens then stop verifying whenever the process restarts.
    logger.warning("SESSION_SECRET not set, using a random per-process secret")
    SESSION_SECRET = secrets.token_urlsafe(32)
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))
ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    role: str = "customer"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def issue_token(identity: Identity) -> str:
    issued = now()
    claims = {
        "sub": identity.id,
        "email": identity.email,
        "role": identity.role,
        "iat": issued,
        "exp": issued + timedelta(hours=SESSION_TTL_HOURS),
    }
    return jwt.encode(claims, SESSION_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Identity]:
    try:
        claims = jwt.decode(token, SESSION_SECRET, algorithms=[ALGORITHM])
    except jwt.PyJWTError as exc:
        logger.warning("Rejected session token", reason=str(exc))
        return None
    if not claims.get("sub") or not claims.get("email"):
        return None
    return Identity(id=claims["sub"], email=claims["email"], role=claims.get("role", "customer"))


def authenticate(email: Optional[str], password: Optional[str]) -> Tuple[str, dict]:
    """Verify credentials and return (token, public user fields)."""
    if not email or not password:
        raise ValidationError("Missing email or password")

    user = get_document("user", {"email": email.strip().lower()})
    if user is None or not verify_password(password, user.get("password")):
        logger.warning("Failed login", email=email)
        raise Unauthorized("Invalid email or password")

    identity = Identity(id=str(user["_id"]), email=user["email"], role=user.get("role", "customer"))
    logger.info("User logged in", user_id=identity.id)
    return issue_token(identity), {
        "id": identity.id,
        "name": user.get("name"),
        "email": identity.email,
        "role": identity.role,
    }


def current_identity(authorization: Optional[str] = Header(None)) -> Optional[Identity]:
    """FastAPI dependency: the caller's identity from a Bearer token, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return decode_token(token.strip())


def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise Unauthorized()
    return identity
