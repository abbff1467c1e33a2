"""Health check endpoints."""
import logging

from flask import Blueprint
from sqlalchemy.exc import SQLAlchemyError

from usermgmt.api.helpers.services import get_services
from usermgmt.core.database import ping

bp = Blueprint("health", __name__)

logger = logging.getLogger(__name__)


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness check: the projection database must answer."""
    try:
        ping(get_services().session_factory)
    except SQLAlchemyError as exc:
        logger.warning("Readiness check failed: %s", exc)
        return ("database unavailable", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})
