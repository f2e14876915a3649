# app.py
from flask import Flask

from ledger.handlers import (
    category_handler,
    error_handler,
    plaid_handler,
    report_handler,
    transaction_handler,
    user_handler,
)


def create_app(session_factory, plaid_client=None):
    """
    Build the HTTP application around an injected session factory.
    """
    app = Flask(__name__)
    app.config["SESSION_FACTORY"] = session_factory
    app.config["PLAID_CLIENT"] = plaid_client

    app.register_blueprint(user_handler.bp)
    app.register_blueprint(category_handler.bp)
    app.register_blueprint(transaction_handler.bp)
    app.register_blueprint(report_handler.bp)
    app.register_blueprint(plaid_handler.bp)
    error_handler.register(app)
    return app
