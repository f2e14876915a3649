# services/db.py
# One session and one BEGIN per operation; serialization failures retry with a fresh session.
import structlog
from sqlalchemy.exc import DBAPIError
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ledger.utils.config import DB_RETRY_ATTEMPTS

log = structlog.get_logger(__name__)

# SQLSTATE codes for serialization_failure and deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_serialization_failure(exc):
    """True when the database aborted the transaction and a retry may succeed."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    # SQLite reports writer contention as a locked database
    return "database is locked" in str(orig)


def _log_retry(retry_state):
    log.warning(
        "transaction_retry",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()),
    )


def run_in_transaction(session_factory, operation, *args, attempts=None, **kwargs):
    """
    Run ``operation(session, *args, **kwargs)`` atomically and return its result.
    """
    retrying = Retrying(
        stop=stop_after_attempt(attempts or DB_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.05, max=1),
        retry=retry_if_exception(is_serialization_failure),
        before_sleep=_log_retry,
        reraise=True,
    )
    for attempt in retrying:
        with attempt:
            session = session_factory()
            try:
                with session.begin():
                    return operation(session, *args, **kwargs)
            finally:
                session.close()
