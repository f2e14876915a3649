# services/reports.py
import matplotlib

matplotlib.use('Agg')  # Use non-GUI backend for image generation
import matplotlib.pyplot as plt
from io import BytesIO
import datetime

from ledger.errors import ValidationError
from ledger.models.category import Category
from ledger.models.transaction import Transaction

UNCATEGORIZED = "Uncategorized"


def _naive_utc(value):
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


def parse_period(start_str, end_str):
    """
    Parse ISO start/end bounds into a half-open [start, end) datetime range.

    A date-only end covers that whole day. Offsets are converted to naive UTC,
    the form timestamps are stored in.
    """
    if not start_str or not end_str:
        raise ValidationError("Missing required parameters")
    try:
        start = _naive_utc(datetime.datetime.fromisoformat(start_str))
        end = _naive_utc(datetime.datetime.fromisoformat(end_str))
    except (TypeError, ValueError):
        raise ValidationError("Dates must use the YYYY-MM-DD format")
    if len(end_str) == 10:
        end += datetime.timedelta(days=1)
    if end <= start:
        raise ValidationError("End date must not precede start date")
    return start, end


def spending_rows(session, owner_id, start, end, category_id=None):
    query = (
        session.query(Transaction, Category.name)
        .outerjoin(Category, Category.id == Transaction.category_id)
        .filter(
            Transaction.owner_id == owner_id,
            Transaction.created_at >= start,
            Transaction.created_at < end,
        )
    )
    if category_id:
        query = query.filter(Transaction.category_id == category_id)

    rows = []
    for tx, category_name in query.order_by(Transaction.created_at.desc()).all():
        rows.append({
            "id": tx.id,
            "amount": float(tx.amount),
            "date": tx.created_at.isoformat(),
            "description": tx.name,
            "category_id": tx.category_id,
            "category_name": category_name or UNCATEGORIZED,
            "type": tx.type or "expense",
        })
    return rows


def summarize_spending(rows):
    by_category = {}
    total_income = 0.0
    total_expense = 0.0
    for row in rows:
        if row["type"] == "income":
            total_income += row["amount"]
        else:
            total_expense += row["amount"]
            name = row["category_name"]
            by_category[name] = by_category.get(name, 0.0) + row["amount"]
    return {
        "by_category": {name: round(total, 2) for name, total in by_category.items()},
        "total_income": round(total_income, 2),
        "total_expense": round(total_expense, 2),
        "net": round(total_income - total_expense, 2),
    }


def render_spending_chart(rows, start, end):
    """
    Two pie charts (expenses, income) by category, returned as a PNG buffer.
    """
    exp_data = {}
    inc_data = {}
    for row in rows:
        target = inc_data if row["type"] == "income" else exp_data
        target[row["category_name"]] = target.get(row["category_name"], 0) + row["amount"]

    labels_exp = list(exp_data.keys()) or ['None']
    sizes_exp = list(exp_data.values()) or [1]
    labels_inc = list(inc_data.keys()) or ['None']
    sizes_inc = list(inc_data.values()) or [1]
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(8, 4))
    ax1.pie(sizes_exp, labels=labels_exp, autopct='%1.1f%%')
    ax1.set_title('Expenses')
    ax2.pie(sizes_inc, labels=labels_inc, autopct='%1.1f%%')
    ax2.set_title('Income')
    last_day = (end - datetime.timedelta(microseconds=1)).date()
    fig.suptitle(f"Spending: {start.date()} to {last_day}")
    buf = BytesIO()
    fig.savefig(buf, format='png')
    buf.seek(0)
    plt.close(fig)
    return buf
