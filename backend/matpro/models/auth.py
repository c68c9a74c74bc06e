from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import new_id


ROLE_OWNER = "OWNER"
ROLE_STORE_MANAGER = "STORE_MANAGER"
VALID_ROLES = (ROLE_OWNER, ROLE_STORE_MANAGER)


class User(db.Model):
    """
    POS operator.

    OWNER sees and reviews everything; STORE_MANAGER is pinned to store_id.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(
            "role = 'OWNER' OR store_id IS NOT NULL",
            name="ck_users_manager_has_store",
        ),
    )

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    phone = db.Column(db.String(32), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(120), nullable=False)
    pin_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default=ROLE_STORE_MANAGER)
    store_id = db.Column(db.String(64), db.ForeignKey("stores.id"), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    store = db.relationship("Store")

    def __repr__(self) -> str:
        return f"<User id={self.id} phone={self.phone!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "phone": self.phone,
            "full_name": self.full_name,
            "role": self.role,
            "store_id": self.store_id,
            "store_name": self.store.name if self.store else None,
            "is_active": self.is_active,
            "last_login_at": to_utc_z(self.last_login_at),
        }


class SessionToken(db.Model):
    """
    Bearer session. Only the SHA-256 of the token is stored.
    """
    __tablename__ = "session_tokens"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    is_revoked = db.Column(db.Boolean, nullable=False, default=False)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))
