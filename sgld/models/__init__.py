"""SQLAlchemy handle shared by every model module.

Models are imported here so ``db.create_all()`` and Alembic autogenerate
see the full metadata.
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from sgld.models import audit, planning_form  # noqa: E402,F401
