import datetime
from decimal import Decimal

import pytest

from ledger.errors import NotFoundError, ValidationError
from ledger.main import reset_budgets
from ledger.models import Category, Transaction
from ledger.services import categories, ledger
from ledger.services.db import run_in_transaction


def test_expense_category_starts_at_budget(add_user, add_category):
    add_user()
    category = add_category(budget=250)

    assert category.balance == Decimal("250.00")
    assert category.last_reset == category.created_at


def test_savings_category_starts_empty(add_user, add_category):
    add_user()
    category = add_category(name="Holiday", category_type="savings", budget=1200)

    assert category.balance == 0
    assert category.budget == Decimal("1200.00")


def test_create_requires_existing_owner(add_category):
    with pytest.raises(NotFoundError):
        add_category(owner_id="ghost")


@pytest.mark.parametrize("kwargs", [
    {"name": ""},
    {"category_type": "weekly"},
    {"period": "daily"},
    {"budget": -1},
    {"budget": "lots"},
])
def test_create_validates_fields(add_user, add_category, kwargs):
    add_user()
    with pytest.raises(ValidationError):
        add_category(**kwargs)


def test_update_leaves_balance_alone(session_factory, add_user, add_category):
    add_user()
    category = add_category(budget=100)
    run_in_transaction(session_factory, ledger.post_transaction, "user_1", category.id, "Market", 40)

    updated = run_in_transaction(
        session_factory, categories.update_category, category.id, "Food", "expense", 300, "weekly"
    )

    assert updated.name == "Food"
    assert updated.budget == Decimal("300.00")
    assert updated.period == "weekly"
    assert updated.balance == Decimal("60.00")


def test_update_missing_category(session_factory):
    with pytest.raises(NotFoundError):
        run_in_transaction(session_factory, categories.update_category, "nope", "Food", "expense", 1)


def test_delete_orphans_entries(session_factory, add_user, add_category):
    add_user()
    category = add_category()
    entry, _ = run_in_transaction(
        session_factory, ledger.post_transaction, "user_1", category.id, "Market", 5
    )

    run_in_transaction(session_factory, categories.delete_category, category.id)

    with session_factory() as s:
        assert s.get(Category, category.id) is None
        assert s.get(Transaction, entry.id).category_id == category.id
    with pytest.raises(NotFoundError):
        run_in_transaction(session_factory, categories.delete_category, category.id)


def test_list_categories(session_factory, add_user, add_category):
    add_user()
    add_category(name="Food")
    add_category(name="Rent", budget=900)

    found = run_in_transaction(session_factory, categories.list_categories, "user_1")

    assert sorted(c.name for c in found) == ["Food", "Rent"]


def make(category_type="expense", period="monthly", last_reset=None):
    return Category(
        owner_id="u", name="c", type=category_type, period=period,
        budget=Decimal("100"), balance=Decimal("12"),
        last_reset=last_reset or datetime.datetime(2025, 3, 10),
    )


@pytest.mark.parametrize("category, now, due", [
    (make(period="weekly"), datetime.datetime(2025, 3, 17), True),
    (make(period="weekly"), datetime.datetime(2025, 3, 16, 23, 59), False),
    (make(period="monthly"), datetime.datetime(2025, 4, 1), True),
    (make(period="monthly"), datetime.datetime(2025, 3, 31, 23, 59), False),
    (make(period="monthly"), datetime.datetime(2026, 1, 2), True),
    (make(category_type="savings", period="weekly"), datetime.datetime(2026, 1, 1), False),
])
def test_is_reset_due(category, now, due):
    assert categories.is_reset_due(category, now) is due


def set_last_reset(session_factory, category_id, when, balance):
    def apply(session):
        category = session.get(Category, category_id)
        category.last_reset = when
        category.balance = balance
    run_in_transaction(session_factory, apply)


def test_reset_due_categories(session_factory, add_user, add_category):
    add_user()
    weekly = add_category(name="Fuel", budget=60, period="weekly")
    monthly = add_category(name="Food", budget=400)
    savings = add_category(name="Trip", category_type="savings", budget=1000)
    march = datetime.datetime(2025, 3, 10)
    for category in (weekly, monthly, savings):
        set_last_reset(session_factory, category.id, march, Decimal("5"))

    results = run_in_transaction(
        session_factory, categories.reset_due_categories, datetime.datetime(2025, 3, 20)
    )

    assert [r["id"] for r in results] == [weekly.id]
    assert results[0]["previous_balance"] == 5.0
    assert results[0]["new_balance"] == 60.0
    with session_factory() as s:
        assert s.get(Category, weekly.id).balance == Decimal("60.00")
        assert s.get(Category, weekly.id).last_reset == datetime.datetime(2025, 3, 20)
        assert s.get(Category, monthly.id).balance == Decimal("5.00")
        assert s.get(Category, savings.id).balance == Decimal("5.00")


def test_explicit_reset(session_factory, add_user, add_category):
    add_user()
    savings = add_category(name="Trip", category_type="savings", budget=1000)
    set_last_reset(session_factory, savings.id, datetime.datetime(2025, 1, 1), Decimal("300"))

    category = run_in_transaction(session_factory, categories.reset_category, savings.id)

    assert category.balance == 0
    assert category.last_reset > datetime.datetime(2025, 1, 1)
    with pytest.raises(NotFoundError):
        run_in_transaction(session_factory, categories.reset_category, "nope")


def test_scheduled_job_resets_rolled_over_budgets(session_factory, add_user, add_category):
    add_user()
    food = add_category(name="Food", budget=400)
    set_last_reset(session_factory, food.id, datetime.datetime(2000, 1, 1), Decimal("0"))

    results = reset_budgets(session_factory)

    assert [r["id"] for r in results] == [food.id]
    with session_factory() as s:
        assert s.get(Category, food.id).balance == Decimal("400.00")
