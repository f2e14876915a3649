# services/categories.py
import datetime
from decimal import Decimal, InvalidOperation

import structlog
from sqlalchemy import delete

from ledger.errors import NotFoundError, ValidationError
from ledger.models import utcnow
from ledger.models.category import Category, CATEGORY_TYPES, RESET_PERIODS
from ledger.models.user import User
from ledger.services.ledger import CENT

log = structlog.get_logger(__name__)

WEEK = datetime.timedelta(days=7)


def _budget_amount(value):
    if isinstance(value, bool) or value is None:
        raise ValidationError("Budget must be a number")
    try:
        amount = Decimal(str(value)).quantize(CENT)
    except (InvalidOperation, ValueError):
        raise ValidationError("Budget must be a number")
    if not amount.is_finite() or amount < 0:
        raise ValidationError("Budget must not be negative")
    return amount


def _validate_fields(name, category_type, period):
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Category name is required")
    if category_type not in CATEGORY_TYPES:
        raise ValidationError(f"Category type must be one of: {', '.join(CATEGORY_TYPES)}")
    if period not in RESET_PERIODS:
        raise ValidationError(f"Period must be one of: {', '.join(RESET_PERIODS)}")
    return name.strip()


def get_category(session, category_id):
    category = session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Budget category not found")
    return category


def list_categories(session, owner_id):
    return (
        session.query(Category)
        .filter(Category.owner_id == owner_id)
        .order_by(Category.created_at.desc())
        .all()
    )


def create_category(session, owner_id, name, category_type, budget, period="monthly"):
    """
    Create a category for an existing user.

    Savings categories start empty and fill up; the others start at their budget.
    """
    name = _validate_fields(name, category_type, period)
    budget = _budget_amount(budget)
    if session.query(User).filter(User.clerk_id == owner_id).first() is None:
        raise NotFoundError("User not found")

    now = utcnow()
    category = Category(
        owner_id=owner_id,
        name=name,
        type=category_type,
        period=period,
        budget=budget,
        created_at=now,
        last_reset=now,
    )
    category.balance = category.opening_balance
    session.add(category)
    session.flush()
    log.info("category_created", category_id=category.id, owner_id=owner_id, type=category_type)
    return category


def update_category(session, category_id, name, category_type, budget, period=None):
    """Change descriptive fields; the balance is left alone."""
    category = get_category(session, category_id)
    name = _validate_fields(name, category_type, period or category.period)
    category.name = name
    category.type = category_type
    category.budget = _budget_amount(budget)
    if period:
        category.period = period
    session.flush()
    log.info("category_updated", category_id=category_id)
    return category


def delete_category(session, category_id):
    """
    Remove a category. Entries that reference it keep the dangling id.
    """
    result = session.execute(
        delete(Category)
        .where(Category.id == category_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Budget category not found")
    log.info("category_deleted", category_id=category_id)
    return category_id


def is_reset_due(category, now):
    if category.type == "savings":
        return False
    last = category.last_reset
    if category.period == "weekly":
        return now - last >= WEEK
    if category.period == "monthly":
        return (now.year, now.month) > (last.year, last.month)
    log.warning("unknown_reset_period", category_id=category.id, period=category.period)
    return False


def _reset(category, now):
    record = {
        "id": category.id,
        "category": category.name,
        "period": category.period,
        "previous_balance": float(category.balance),
    }
    category.balance = category.opening_balance
    category.last_reset = now
    record["new_balance"] = float(category.balance)
    return record


def reset_category(session, category_id, now=None):
    """Explicit reset back to the opening balance."""
    category = session.get(Category, category_id, with_for_update=True)
    if category is None:
        raise NotFoundError("Budget category not found")
    _reset(category, now or utcnow())
    session.flush()
    log.info("category_reset", category_id=category_id)
    return category


def reset_due_categories(session, now=None):
    """
    Reset every category whose weekly or monthly period has rolled over.
    """
    now = now or utcnow()
    candidates = (
        session.query(Category)
        .filter(Category.type != "savings")
        .order_by(Category.last_reset)
        .with_for_update()
        .all()
    )
    results = [_reset(category, now) for category in candidates if is_reset_due(category, now)]
    session.flush()
    log.info("categories_reset", checked=len(candidates), reset=len(results))
    return results
