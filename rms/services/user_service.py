"""
Acting-user directory.

Users are provisioned by the identity gateway in production; this module
only seeds one account per role for local and demo environments.
"""

import logging

from rms.models import db
from rms.models.auth import (
    ROLE_ADMIN,
    ROLE_BOARD,
    ROLE_BOARD_CHAIR,
    ROLE_BOARD_COMMITTEE,
    ROLE_BOARD_SECRETARY,
    ROLE_CHIEF_OFFICER,
    ROLE_HR,
    ROLE_RECORDS_OFFICER,
    User,
)
from rms.utils.helpers import unit_of_work

logger = logging.getLogger(__name__)

DEFAULT_USERS = [
    ("records@rms.local", "Records Officer", ROLE_RECORDS_OFFICER),
    ("secretary@rms.local", "Board Secretary", ROLE_BOARD_SECRETARY),
    ("chief@rms.local", "Chief Officer", ROLE_CHIEF_OFFICER),
    ("chair@rms.local", "Board Chair", ROLE_BOARD_CHAIR),
    ("committee@rms.local", "Board Committee", ROLE_BOARD_COMMITTEE),
    ("hr@rms.local", "Human Resources", ROLE_HR),
    ("admin@rms.local", "Administrator", ROLE_ADMIN),
    ("board@rms.local", "Board Member", ROLE_BOARD),
]


def seed_users(users=None) -> list[User]:
    """Create any missing default users. Idempotent; keyed by email.

    Returns:
        The users created by this call (empty when all existed).
    """
    created = []
    with unit_of_work("seed users"):
        for email, full_name, role in users or DEFAULT_USERS:
            if User.query.filter_by(email=email).first():
                continue
            user = User(email=email, full_name=full_name, role=role, status="active")
            db.session.add(user)
            created.append(user)
    for user in created:
        logger.info("Seeded user %s (%s)", user.email, user.role)
    return created
