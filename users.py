"""User accounts: registration, admin management and the caller's profile."""

from typing import Optional

import structlog
from pymongo.errors import DuplicateKeyError

from auth import Identity, hash_password, require_identity
from database import (
    create_document,
    delete_document,
    get_document,
    get_documents,
    serialize_document,
    serialize_documents,
    to_object_id,
    update_document,
)
from errors import Conflict, NotFound, ValidationError
from schemas import ProfilePayload, RegisterPayload, User, UserPayload

logger = structlog.get_logger(__name__)

PUBLIC = {"password": 0}


def prepare_user_document(fields: dict) -> dict:
    """Normalize user fields before any write: lowercase email, hash a plaintext password."""
    prepared = dict(fields)
    if prepared.get("email") is not None:
        prepared["email"] = prepared["email"].strip().lower()
    if prepared.get("name") is not None:
        prepared["name"] = prepared["name"].strip()
    if prepared.get("password"):
        prepared["password"] = hash_password(prepared["password"])
    return prepared


def resolve_user(identity: Optional[Identity]) -> dict:
    """Load the user record behind a session identity (by email)."""
    identity = require_identity(identity)
    user = get_document("user", {"email": identity.email})
    if user is None:
        raise NotFound("User not found")
    return user


def _insert_user(user: User) -> str:
    if get_document("user", {"email": user.email}) is not None:
        raise Conflict("Email already exists")
    try:
        return create_document("user", user)
    except DuplicateKeyError:
        raise Conflict("Email already exists")


def register(payload: RegisterPayload) -> str:
    if not payload.name or not payload.email or not payload.phone or not payload.password:
        raise ValidationError("All fields are required")
    if payload.role and payload.role != "customer":
        raise ValidationError("Invalid role")

    fields = prepare_user_document(payload.model_dump(exclude={"role"}))
    user_id = _insert_user(User(role="customer", **fields))
    logger.info("User registered", user_id=user_id)
    return user_id


# -----------------------------
# Admin
# -----------------------------

def list_users() -> list:
    return serialize_documents(get_documents("user", projection=PUBLIC))


def create_user(payload: UserPayload) -> dict:
    if not payload.name or not payload.email or not payload.password or not payload.role:
        raise ValidationError("All fields required")

    fields = prepare_user_document(payload.model_dump())
    user_id = _insert_user(User(**fields))
    logger.info("User created", user_id=user_id, role=payload.role)
    return {"id": user_id, "name": fields["name"], "email": fields["email"], "role": payload.role}


def get_user(user_id: str) -> dict:
    user = get_document("user", {"_id": to_object_id(user_id, "user ID")}, PUBLIC)
    if user is None:
        raise NotFound("User not found")
    return serialize_document(user)


def update_user(user_id: str, payload: UserPayload) -> dict:
    changes = prepare_user_document(payload.model_dump(exclude_none=True))
    try:
        user = update_document("user", {"_id": to_object_id(user_id, "user ID")}, changes)
    except DuplicateKeyError:
        raise Conflict("Email already exists")
    if user is None:
        raise NotFound("User not found")
    logger.info("User updated", user_id=user_id, fields=sorted(changes))
    user.pop("password", None)
    return serialize_document(user)


def delete_user(user_id: str):
    # Deleting an unknown user is not an error.
    delete_document("user", {"_id": to_object_id(user_id, "user ID")})
    logger.info("User deleted", user_id=user_id)


# -----------------------------
# Profile
# -----------------------------

def get_profile(identity: Optional[Identity]) -> dict:
    user = resolve_user(identity)
    user.pop("password", None)
    return serialize_document(user)


def update_profile(identity: Optional[Identity], payload: ProfilePayload) -> dict:
    identity = require_identity(identity)
    changes = payload.model_dump(exclude_unset=True)
    user = update_document("user", {"email": identity.email}, changes)
    if user is None:
        raise NotFound("User not found")
    logger.info("Profile updated", user_id=str(user["_id"]), fields=sorted(changes))
    user.pop("password", None)
    return serialize_document(user)
