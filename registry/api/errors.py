"""Error handlers for the application."""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from registry.core.directory import DirectoryError
from registry.core.exceptions import RegistryError


def register_error_handlers(app):
    """Register JSON error handlers with the Flask app."""

    @app.errorhandler(RegistryError)
    def registry_error(error):
        """Map registry exceptions to their HTTP status."""
        if error.status_code >= 500:
            app.logger.error(f"Registry error: {error}", exc_info=True)
        else:
            app.logger.info(f"{type(error).__name__}: {error}")
        return jsonify({"error": error.error, "message": str(error)}), error.status_code

    @app.errorhandler(DirectoryError)
    def directory_error(error):
        """Directory failures surface as 502 Bad Gateway."""
        app.logger.error(f"Directory error: {error}")
        return jsonify({"error": "Bad Gateway", "message": "Identity directory request failed"}), 502

    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request errors."""
        return jsonify({"error": "Bad Request", "message": str(error)}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        """Handle 401 Unauthorized errors."""
        return jsonify({"error": "Unauthorized", "message": "Authentication required"}), 401

    @app.errorhandler(403)
    def forbidden(error):
        """Handle 403 Forbidden errors."""
        return jsonify({"error": "Forbidden", "message": "Insufficient permissions"}), 403

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found errors."""
        return jsonify({"error": "Not Found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 Method Not Allowed errors."""
        return jsonify({"error": "Method Not Allowed", "message": str(error)}), 405

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500
