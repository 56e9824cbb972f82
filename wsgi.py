"""
WSGI and Flask CLI entry point for the OE framework manager.

Usage:
    flask --app wsgi run
    flask --app wsgi db migrate -m "description"   # Flask-Migrate / Alembic
    flask --app wsgi db upgrade
    flask --app wsgi seed-demo
    gunicorn wsgi:app
"""

from app import create_app

app = create_app()
