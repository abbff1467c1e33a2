"""Shared helpers for the API blueprints."""
