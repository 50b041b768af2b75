"""
Board Records Management Service
Shared SQLAlchemy handle.

Every model module imports ``db`` from here so Alembic and
``db.create_all()`` see one metadata object.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
