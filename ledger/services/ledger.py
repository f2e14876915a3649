# services/ledger.py
# Balance changes are relative UPDATEs so concurrent postings serialize on the category row.
from collections import namedtuple
from decimal import Decimal, InvalidOperation

import structlog
from sqlalchemy import update

from ledger.errors import NotFoundError, ValidationError
from ledger.models import utcnow
from ledger.models.category import Category
from ledger.models.plaid import PlaidTransaction
from ledger.models.transaction import Transaction, ENTRY_TYPES

log = structlog.get_logger(__name__)

CENT = Decimal("0.01")

ReversalResult = namedtuple("ReversalResult", ["entry", "category", "balance_restored"])


def to_amount(value):
    """Parse a positive monetary amount rounded to cents."""
    if isinstance(value, bool) or value is None:
        raise ValidationError("Amount must be a number")
    try:
        amount = Decimal(str(value)).quantize(CENT)
    except (InvalidOperation, ValueError):
        raise ValidationError("Amount must be a number")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    return amount


def _check_name(name):
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Name is required")
    return name.strip()


def _check_type(entry_type):
    if entry_type not in ENTRY_TYPES:
        raise ValidationError(f"Transaction type must be one of: {', '.join(ENTRY_TYPES)}")
    return entry_type


def adjust_balance(session, category_id, delta, owner_id=None):
    """
    Add ``delta`` to a category balance and return the number of rows touched.
    """
    stmt = update(Category).where(Category.id == category_id)
    if owner_id is not None:
        stmt = stmt.where(Category.owner_id == owner_id)
    stmt = stmt.values(balance=Category.balance + delta).execution_options(
        synchronize_session=False
    )
    return session.execute(stmt).rowcount


def _fresh_category(session, category_id):
    return session.get(Category, category_id, populate_existing=True)


def post_transaction(session, owner_id, category_id, name, amount, entry_type="expense"):
    """
    Insert a ledger entry and debit its category by the entry amount.

    The debit runs first; when it matches no category owned by ``owner_id``
    a ``NotFoundError`` aborts the unit before any entry exists.
    """
    name = _check_name(name)
    amount = to_amount(amount)
    entry_type = _check_type(entry_type)
    if not owner_id or not category_id:
        raise ValidationError("Owner and category are required")

    if adjust_balance(session, category_id, -amount, owner_id=owner_id) == 0:
        raise NotFoundError("Budget category not found")

    entry = Transaction(
        owner_id=owner_id,
        category_id=category_id,
        name=name,
        amount=amount,
        type=entry_type,
    )
    session.add(entry)
    session.flush()
    category = _fresh_category(session, category_id)
    log.info(
        "transaction_posted",
        transaction_id=entry.id,
        category_id=category_id,
        amount=str(amount),
        balance=str(category.balance),
    )
    return entry, category


def record_entry(session, owner_id, name, amount, entry_type="expense", plaid_transaction_id=None):
    """
    Insert an entry with no category; no balance is touched.
    """
    entry = Transaction(
        owner_id=owner_id,
        category_id=None,
        name=_check_name(name),
        amount=to_amount(amount),
        type=_check_type(entry_type),
        plaid_transaction_id=plaid_transaction_id,
    )
    session.add(entry)
    session.flush()
    log.info("transaction_recorded", transaction_id=entry.id, amount=str(entry.amount))
    return entry


def reverse_transaction(session, entry_id):
    """
    Delete a ledger entry and credit its category by the entry amount.

    A missing category does not block the deletion; the result then carries
    ``balance_restored=False`` so the caller can surface the discrepancy.
    An entry imported from the bank puts its bank row back in the unsynced list.
    """
    entry = session.get(Transaction, entry_id, with_for_update=True)
    if entry is None:
        raise NotFoundError("Transaction not found")

    session.delete(entry)
    session.flush()

    if entry.plaid_transaction_id is not None:
        session.execute(
            update(PlaidTransaction)
            .where(PlaidTransaction.transaction_id == entry.plaid_transaction_id)
            .values(is_synced_to_transactions=False, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    category = None
    restored = True
    if entry.category_id is not None:
        if adjust_balance(session, entry.category_id, entry.amount) == 0:
            restored = False
            log.warning(
                "balance_not_restored",
                transaction_id=entry.id,
                category_id=entry.category_id,
                amount=str(entry.amount),
            )
        else:
            category = _fresh_category(session, entry.category_id)

    log.info("transaction_reversed", transaction_id=entry.id, balance_restored=restored)
    return ReversalResult(entry, category, restored)


def amend_transaction(session, entry_id, name, amount, category_id=None):
    """
    Change an entry's name, amount or category and re-apply its balance effect.

    The old amount goes back to the old category (tolerating a deleted one)
    and the new amount comes off the new category, which must exist.
    """
    name = _check_name(name)
    amount = to_amount(amount)

    entry = session.get(Transaction, entry_id, with_for_update=True)
    if entry is None:
        raise NotFoundError("Transaction not found")

    old_category_id = entry.category_id
    new_category_id = category_id or old_category_id

    if old_category_id is not None:
        if adjust_balance(session, old_category_id, entry.amount) == 0:
            log.warning(
                "balance_not_restored",
                transaction_id=entry.id,
                category_id=old_category_id,
                amount=str(entry.amount),
            )

    category = None
    if new_category_id is not None:
        if adjust_balance(session, new_category_id, -amount, owner_id=entry.owner_id) == 0:
            raise NotFoundError("Budget category not found")
        category = _fresh_category(session, new_category_id)

    entry.name = name
    entry.amount = amount
    entry.category_id = new_category_id
    session.flush()
    log.info(
        "transaction_amended",
        transaction_id=entry.id,
        old_category_id=old_category_id,
        category_id=new_category_id,
        amount=str(amount),
    )
    return entry, category


def list_transactions(session, owner_id):
    return (
        session.query(Transaction)
        .filter(Transaction.owner_id == owner_id)
        .order_by(Transaction.created_at.desc())
        .all()
    )
