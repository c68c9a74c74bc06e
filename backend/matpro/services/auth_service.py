# Overview: Operator accounts and PIN authentication.

"""
Authentication Service

Operators sign in with phone + PIN. PINs are short, so they are stored as
bcrypt hashes (cost 12) and never compared in plain text.
"""

from __future__ import annotations

import bcrypt

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Store, User
from ..models.auth import ROLE_STORE_MANAGER, VALID_ROLES
from ..validation import coerce_choice, optional_str


PIN_MIN_LENGTH = 4
PIN_MAX_LENGTH = 8


def validate_pin(pin) -> str:
    if not isinstance(pin, str) or not pin.isdigit():
        raise ValidationError("PIN must be digits only")
    if not PIN_MIN_LENGTH <= len(pin) <= PIN_MAX_LENGTH:
        raise ValidationError(f"PIN must be {PIN_MIN_LENGTH}-{PIN_MAX_LENGTH} digits")
    return pin


def hash_pin(pin: str) -> str:
    validate_pin(pin)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(pin.encode("utf-8"), salt).decode("utf-8")


def verify_pin(pin: str, pin_hash: str) -> bool:
    """bcrypt.checkpw is constant-time; malformed hashes never match."""
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        return False


def create_user(phone: str, full_name: str, pin: str, role: str = ROLE_STORE_MANAGER, store_id: str | None = None) -> User:
    """
    Create an operator. Store managers must be pinned to an existing store.

    Does not commit; the caller owns the transaction.
    """
    phone = optional_str(phone, "phone", max_len=32)
    full_name = optional_str(full_name, "full_name", max_len=120)
    missing = [name for name, value in (("phone", phone), ("full_name", full_name)) if not value]
    if missing:
        raise ValidationError.missing(missing)

    role = coerce_choice(role, "role", VALID_ROLES)
    if role == ROLE_STORE_MANAGER:
        if not store_id:
            raise ValidationError.missing(["store_id"])
        if not db.session.get(Store, store_id):
            raise NotFoundError("Store not found")

    if db.session.query(User.id).filter_by(phone=phone).first():
        raise ConflictError(f"User with phone {phone} already exists")

    user = User(
        phone=phone,
        full_name=full_name,
        pin_hash=hash_pin(pin),
        role=role,
        store_id=store_id,
    )
    db.session.add(user)
    db.session.flush()
    return user


def authenticate(phone: str, pin: str) -> User | None:
    """Return the active user for phone + PIN, or None."""
    if not isinstance(phone, str) or not isinstance(pin, str):
        return None
    user = db.session.query(User).filter_by(phone=phone.strip()).first()
    if not user or not user.is_active:
        return None
    if not verify_pin(pin, user.pin_hash):
        return None
    return user
