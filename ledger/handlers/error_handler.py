# handlers/error_handler.py
import structlog
from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from ledger.errors import LedgerError

log = structlog.get_logger(__name__)


def register(app):
    """Every failure leaves the service as a JSON error envelope."""

    @app.errorhandler(LedgerError)
    def handle_ledger_error(error):
        if error.status_code >= 500:
            log.error("request_failed", error=error.message, kind=type(error).__name__)
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        log.error("database_error", error=str(error))
        return jsonify({"error": "Database Error"}), 500

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        log.exception("unhandled_error", error=str(error))
        return jsonify({"error": "Internal Server Error"}), 500
