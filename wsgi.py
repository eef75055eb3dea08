"""
WSGI entry point; also the Flask-Migrate / Alembic app.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db upgrade
    flask --app wsgi db migrate -m "description"
"""

from sgld import create_app

app = create_app()
