# main.py
import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ledger.app import create_app
from ledger.models import init_db, make_session_factory
from ledger.services.categories import reset_due_categories
from ledger.services.db import run_in_transaction
from ledger.services.plaid import PlaidClient
from ledger.utils import config
from ledger.utils.logging import configure_logging

log = structlog.get_logger(__name__)


def reset_budgets(session_factory):
    """Scheduled job: roll weekly and monthly budgets over."""
    try:
        results = run_in_transaction(session_factory, reset_due_categories)
    except Exception:
        log.exception("budget_reset_failed")
        return []
    log.info("budget_reset_finished", reset=len(results))
    return results


def build_plaid_client():
    if not config.PLAID_CLIENT_ID or not config.PLAID_SECRET:
        log.warning("plaid_disabled", reason="PLAID_CLIENT_ID or PLAID_SECRET not set")
        return None
    return PlaidClient(config.PLAID_CLIENT_ID, config.PLAID_SECRET, config.PLAID_ENV)


def main():
    configure_logging(config.LOG_LEVEL)
    config.validate_config()

    # Initialize database
    engine = init_db(config.DATABASE_URL, pool_pre_ping=True)
    session_factory = make_session_factory(engine)
    app = create_app(session_factory, build_plaid_client())

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        reset_budgets,
        CronTrigger(hour=config.RESET_HOUR, minute=0),
        args=[session_factory],
    )
    scheduler.start()

    log.info("server_starting", host=config.HOST, port=config.PORT)
    try:
        app.run(host=config.HOST, port=config.PORT)
    finally:
        scheduler.shutdown()


if __name__ == "__main__":
    main()
