"""Gunicorn configuration for the user management API.

Run with:
    gunicorn -c gunicorn.conf.py usermgmt.wsgi:app

Secrets (KEYCLOAK_SERVICE_CLIENT_SECRET, KEYCLOAK_ADMIN_PASSWORD) are read by
usermgmt.config.settings from /run/secrets first, then from the environment.
"""
import os

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """Report where the worker will pick up its Keycloak credentials."""
    from pathlib import Path

    secrets_dir = Path("/run/secrets")
    if secrets_dir.is_dir():
        secret_files = list(secrets_dir.glob("*"))
        if secret_files:
            worker.log.info(f"Found {len(secret_files)} secrets in /run/secrets (using mounted secrets)")
            return
    worker.log.info("No mounted secrets, Keycloak credentials come from the environment")
