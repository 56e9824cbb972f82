"""
OE Framework Manager
Database models package.

Exposes the shared Flask-SQLAlchemy instance; model modules import ``db``
from here and are imported by the app factory so metadata is complete
before ``db.create_all()``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
