"""Flask API server for whitelist applications."""

import logging
from typing import Optional

from flask import Flask, request, jsonify
from flask_cors import CORS
from pydantic import ValidationError as PydanticValidationError

from config.settings import CORS_ORIGINS, FLASK_PORT, FLASK_DEBUG, IDENTITY_HEADER, LOG_LEVEL
from src.schemas.application import DecisionRequest
from src.services.application_service import application_service
from src.services.errors import ApplicationError, ValidationError

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)
CORS(app, origins=CORS_ORIGINS)


def _caller_identity() -> Optional[str]:
    """Discord ID of the caller, as forwarded by the identity provider."""
    identity = request.headers.get(IDENTITY_HEADER, "").strip()
    return identity or None


def _require_admin() -> str:
    return application_service.authorizer.require_admin(_caller_identity())


@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint.

    Returns:
        JSON response with status and the number of pending applications
    """
    return jsonify({
        "status": "healthy",
        "service": "whitelist-api",
        "active": application_service.count_active(),
    }), 200


@app.route('/applications', methods=['POST'])
def submit_application():
    """Submit a whitelist application.

    Request JSON:
        {
            "username": "Alice",
            "age": 20,
            "steamId": "11111111111111111",
            "discordId": "alice",
            "cfxAccount": "https://forum.cfx.re/u/alice",
            "experience": "At least 50 characters...",
            "character": "At least 100 characters...",
            "discord": {"id": "...", "username": "...", ...}
        }

    Returns:
        201 with the stored application, or 400 with per-field errors
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("No JSON data provided")

    application = application_service.submit(data)
    return jsonify({
        "status": "success",
        "message": "Your whitelist application has been received. We will review it shortly.",
        "application": application.to_dict(),
    }), 201


@app.route('/applications', methods=['GET'])
def list_applications():
    """Return all pending applications (admin only)."""
    _require_admin()
    applications = application_service.list_active()
    return jsonify({
        "status": "success",
        "applications": [item.to_dict() for item in applications],
    }), 200


@app.route('/applications/archive', methods=['GET'])
def list_archived_applications():
    """Return decided applications, newest decision first (admin only).

    Query parameters:
        status: Optional filter, ``approved`` or ``denied``
    """
    _require_admin()
    status_filter = request.args.get('status') or None
    archived = application_service.list_archived(status=status_filter)
    return jsonify({
        "status": "success",
        "applications": [item.to_dict() for item in archived],
    }), 200


@app.route('/applications/<application_id>', methods=['GET'])
def get_application(application_id: str):
    """Return one pending application (admin only)."""
    _require_admin()
    application = application_service.get_active(application_id)
    return jsonify({
        "status": "success",
        "application": application.to_dict(),
    }), 200


@app.route('/applications/<application_id>', methods=['PATCH'])
def decide_application(application_id: str):
    """Approve or deny a pending application and move it to the archive.

    Request JSON:
        {
            "status": "approved" | "denied",
            "reason": "Optional rationale"
        }
    """
    identity = _require_admin()

    body = request.get_json(silent=True) or {}
    try:
        decision = DecisionRequest.model_validate(body)
    except PydanticValidationError as error:
        raise ValidationError(
            "Invalid decision",
            fields={"status": "Status must be 'approved' or 'denied'."},
        ) from error

    archived = application_service.decide(
        application_id,
        decision.status,
        reason=decision.reason,
        actor_identity=identity,
    )
    return jsonify({
        "status": "success",
        "message": f"Application {decision.status} successfully and archived.",
        "application": archived.to_dict(),
    }), 200


@app.errorhandler(ApplicationError)
def handle_application_error(error: ApplicationError):
    """Render service errors; store failures were already logged by the repository."""
    return jsonify(error.to_dict()), error.status_code


@app.errorhandler(404)
def not_found(error):
    """Handle 404 errors."""
    return jsonify({
        "error": "Endpoint not found",
        "status": "failed"
    }), 404


@app.errorhandler(405)
def method_not_allowed(error):
    """Handle 405 errors."""
    return jsonify({
        "error": "Method not allowed",
        "status": "failed"
    }), 405


@app.errorhandler(500)
def internal_error(error):
    """Handle 500 errors."""
    logger.error(f"Internal server error: {error}")
    return jsonify({
        "error": "Internal server error",
        "status": "failed"
    }), 500


def run_server():
    """Prepare the store and run the Flask server."""
    logger.info("=" * 60)
    logger.info("Configuration Check:")
    admin_count = len(application_service.authorizer.admin_ids)
    logger.info(f"Admin identities: {admin_count if admin_count else '✗ NONE CONFIGURED'}")
    logger.info(f"Identity header: {IDENTITY_HEADER}")
    logger.info("=" * 60)

    if not admin_count:
        logger.warning("ADMIN_DISCORD_IDS is empty! Nobody can review applications.")

    application_service.create_schema()
    dropped = application_service.reconcile()
    if dropped:
        logger.warning(f"Reconciliation dropped {len(dropped)} already-archived application(s)")

    # Log registered routes for debugging
    logger.info("=" * 60)
    logger.info("Registered Routes:")
    for rule in app.url_map.iter_rules():
        methods = ','.join(sorted(rule.methods - {'HEAD', 'OPTIONS'}))
        logger.info(f"  {rule.rule:50s} [{methods}]")
    logger.info("=" * 60)

    logger.info(f"Starting Flask server on port {FLASK_PORT}")
    app.run(
        host='0.0.0.0',
        port=FLASK_PORT,
        debug=FLASK_DEBUG,
        threaded=True
    )


if __name__ == '__main__':
    run_server()
