"""
Seed one active user per records-management role.

Usage:
    python scripts/seed_rms_users.py              # Uses development DB
    python scripts/seed_rms_users.py --env prod   # Uses production DB

This script is idempotent: safe to run multiple times.
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rms import create_app
from rms.models.auth import User
from rms.services.user_service import seed_users


def main():
    parser = argparse.ArgumentParser(description="Seed one user per records-management role")
    parser.add_argument("--env", default="development", help="App environment")
    args = parser.parse_args()

    os.environ.setdefault("APP_ENV", args.env)
    app = create_app(args.env)

    with app.app_context():
        print("=" * 60)
        print("  SEED: Records management users")
        print("=" * 60)

        created = seed_users()
        for user in created:
            print(f"  created  id={user.id:<4} {user.role:16s} {user.email}")
        if not created:
            print("  all default users already exist")

        print("\n  Users:")
        for user in User.query.order_by(User.id).all():
            print(f"  id={user.id:<4} {user.role:16s} {user.status:8s} {user.email}")

        print("\nSeed complete. Send the id as the X-User-Id header.")


if __name__ == "__main__":
    main()
