"""
Board Records Management Service
Identity model for acting users.

Authentication happens upstream; this table only answers "who is this
user and which organisational role do they hold right now".  The role is
read on every request so that a role change takes effect immediately.
"""

from datetime import datetime, timezone

from rms.models import db

# ── Roles ────────────────────────────────────────────────────────────────────

ROLE_RECORDS_OFFICER = "recordsOfficer"
ROLE_BOARD_SECRETARY = "boardSecretary"
ROLE_CHIEF_OFFICER = "chiefOfficer"
ROLE_BOARD_CHAIR = "boardChair"
ROLE_BOARD_COMMITTEE = "boardCommittee"
ROLE_HR = "HR"
ROLE_ADMIN = "admin"
ROLE_BOARD = "board"

ROLES = frozenset({
    ROLE_RECORDS_OFFICER,
    ROLE_BOARD_SECRETARY,
    ROLE_CHIEF_OFFICER,
    ROLE_BOARD_CHAIR,
    ROLE_BOARD_COMMITTEE,
    ROLE_HR,
    ROLE_ADMIN,
    ROLE_BOARD,
})

USER_STATUSES = {"active", "inactive"}


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), nullable=False, unique=True)
    full_name = db.Column(db.String(200))
    role = db.Column(
        db.String(30), nullable=False,
        comment="recordsOfficer | boardSecretary | chiefOfficer | boardChair | boardCommittee | HR | admin | board",
    )
    status = db.Column(db.String(20), nullable=False, default="active")
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_users_role", "role"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.role})>"
