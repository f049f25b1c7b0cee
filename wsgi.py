"""
WSGI and Flask-Migrate / Alembic entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi scan-overdue --tenant-id 1
    gunicorn wsgi:app
"""

from cutroom import create_app

app = create_app()
