"""Error handlers for the application.

Every error leaves the API as ``{error, message, status, timestamp}``.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from usermgmt.api.helpers.responses import error_body
from usermgmt.core.errors import IdentityProviderUnavailableError, UserManagementError
from usermgmt.core.keycloak.exceptions import KeycloakAPIError, KeycloakUnavailableError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(UserManagementError)
    def domain_error(error):
        """Handle business and validation errors raised by the services."""
        logger.info("%s: %s", error.error, error.message)
        body = error_body(**error.to_dict())
        return jsonify(body), error.status

    @app.errorhandler(KeycloakUnavailableError)
    def keycloak_unreachable(error):
        logger.error("Identity provider unreachable: %s", error)
        return _upstream(IdentityProviderUnavailableError("Identity provider is unreachable"))

    @app.errorhandler(KeycloakAPIError)
    def keycloak_api_error(error):
        logger.error("Unexpected identity provider response: %s", error)
        return _upstream(
            IdentityProviderUnavailableError(
                f"Identity provider returned status {error.status_code}",
                upstream_status=error.status_code,
            )
        )

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found errors."""
        return jsonify(error_body("Not Found", "Resource not found", 404)), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify(error_body("Method Not Allowed", "Method not allowed for this resource", 405)), 405

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            body = error_body(error.name, error.description or error.name, error.code)
            return jsonify(body), error.code

        # ALWAYS log the full error
        logger.error("Unhandled exception: %s", error, exc_info=True)
        body = error_body("Internal Server Error", "An unexpected error occurred", 500)
        return jsonify(body), 500


def _upstream(error: IdentityProviderUnavailableError):
    return jsonify(error_body(**error.to_dict())), error.status
