from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    bookmarks = db.relationship(
        "Bookmark",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Bookmark.created_at",
    )

    def set_password(self, password: str) -> None:
        if not password:
            raise ValueError("Password must not be empty.")
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not password or not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username}

    def __repr__(self) -> str:
        return f"<User {self.username!r}>"


class Bookmark(db.Model):
    __tablename__ = "bookmarks"
    __table_args__ = (db.UniqueConstraint("user_id", "anchor", name="uq_bookmarks_user_anchor"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    anchor = db.Column(db.String(200), nullable=False)
    note = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    user = db.relationship("User", back_populates="bookmarks")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "anchor": self.anchor,
            "note": self.note,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class LinkCheck(db.Model):
    """One probe of one external URL; the newest row per URL is the current state."""

    __tablename__ = "link_checks"

    id = db.Column(db.Integer, primary_key=True)
    url = db.Column(db.String(2048), nullable=False, index=True)
    ok = db.Column(db.Boolean, nullable=False)
    status = db.Column(db.Integer, nullable=True)
    error = db.Column(db.Text, nullable=True)
    elapsed_ms = db.Column(db.Integer, nullable=False, default=0)
    checked_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "ok": self.ok,
            "status": self.status,
            "error": self.error,
            "elapsed_ms": self.elapsed_ms,
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
        }
