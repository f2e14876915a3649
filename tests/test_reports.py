import datetime
from decimal import Decimal

import pytest

from ledger.errors import ValidationError
from ledger.models import Transaction
from ledger.services import ledger, reports
from ledger.services.db import run_in_transaction


def test_parse_period_date_only_end_is_inclusive():
    start, end = reports.parse_period("2025-05-01", "2025-05-31")

    assert start == datetime.datetime(2025, 5, 1)
    assert end == datetime.datetime(2025, 6, 1)


def test_parse_period_keeps_explicit_times():
    _, end = reports.parse_period("2025-05-01", "2025-05-31T12:00:00")
    assert end == datetime.datetime(2025, 5, 31, 12)


def test_parse_period_converts_offsets_to_utc():
    start, end = reports.parse_period("2025-05-01", "2025-05-31T02:00:00+02:00")

    assert end == datetime.datetime(2025, 5, 31)
    assert end.tzinfo is None
    assert end > start


@pytest.mark.parametrize("start, end", [
    (None, "2025-05-01"),
    ("2025-05-01", ""),
    ("yesterday", "2025-05-01"),
    ("2025-05-10", "2025-05-01"),
    (20250501, "2025-05-31"),
])
def test_parse_period_rejects_bad_input(start, end):
    with pytest.raises(ValidationError):
        reports.parse_period(start, end)


@pytest.fixture
def may_activity(session_factory, add_user, add_category):
    add_user()
    food = add_category(name="Food", budget=300)
    rent = add_category(name="Rent", budget=1000)

    def seed(session):
        rows = [
            ("Market", food.id, "12.50", "expense", datetime.datetime(2025, 5, 2, 10)),
            ("Bakery", food.id, "7.50", "expense", datetime.datetime(2025, 5, 31, 18)),
            ("May rent", rent.id, "900", "expense", datetime.datetime(2025, 5, 1, 9)),
            ("Salary", None, "2500", "income", datetime.datetime(2025, 5, 25, 8)),
            ("April rent", rent.id, "900", "expense", datetime.datetime(2025, 4, 1, 9)),
        ]
        for name, category_id, amount, kind, created in rows:
            session.add(Transaction(
                owner_id="user_1", category_id=category_id, name=name,
                amount=Decimal(amount), type=kind, created_at=created,
            ))
    run_in_transaction(session_factory, seed)
    return food


def test_spending_rows_and_summary(session_factory, may_activity):
    start, end = reports.parse_period("2025-05-01", "2025-05-31")

    rows = run_in_transaction(session_factory, reports.spending_rows, "user_1", start, end)
    summary = reports.summarize_spending(rows)

    assert [r["description"] for r in rows] == ["Bakery", "Salary", "Market", "May rent"]
    assert rows[1]["category_name"] == reports.UNCATEGORIZED
    assert summary == {
        "by_category": {"Food": 20.0, "Rent": 900.0},
        "total_income": 2500.0,
        "total_expense": 920.0,
        "net": 1580.0,
    }


def test_spending_rows_filtered_by_category(session_factory, may_activity):
    start, end = reports.parse_period("2025-05-01", "2025-05-31")

    rows = run_in_transaction(
        session_factory, reports.spending_rows, "user_1", start, end, may_activity.id
    )

    assert {r["description"] for r in rows} == {"Market", "Bakery"}


def test_render_spending_chart_is_png():
    start, end = reports.parse_period("2025-05-01", "2025-05-31")
    rows = [
        {"amount": 10.0, "category_name": "Food", "type": "expense"},
        {"amount": 5.0, "category_name": "Fun", "type": "expense"},
    ]

    buf = reports.render_spending_chart(rows, start, end)

    assert buf.read(8) == b"\x89PNG\r\n\x1a\n"


def test_spending_endpoints(client, session_factory, may_activity):
    resp = client.get("/reports/spending/user_1?startDate=2025-05-01&endDate=2025-05-31")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["summary"]["total_expense"] == 920.0

    chart = client.get("/reports/spending/user_1/chart.png?startDate=2025-05-01&endDate=2025-05-31")
    assert chart.status_code == 200
    assert chart.mimetype == "image/png"

    assert client.get("/reports/spending/user_1?startDate=2025-05-01").status_code == 400


def test_report_reflects_postings(client, session_factory, add_user, add_category):
    add_user()
    food = add_category(name="Food", budget=100)
    run_in_transaction(session_factory, ledger.post_transaction, "user_1", food.id, "Lunch", 8.25)
    data = client.get("/reports/spending/user_1?startDate=2000-01-01&endDate=2100-01-01").get_json()

    assert data["data"]["summary"]["by_category"] == {"Food": 8.25}


def test_spending_endpoint_accepts_offset_end_date(client, session_factory, may_activity):
    resp = client.get(
        "/reports/spending/user_1?startDate=2025-05-01&endDate=2025-05-31T00:00:00%2B00:00"
    )

    assert resp.status_code == 200
    assert "Bakery" not in {r["description"] for r in resp.get_json()["data"]["rows"]}
