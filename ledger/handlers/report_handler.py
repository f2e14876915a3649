# handlers/report_handler.py
from flask import Blueprint, request, send_file

from ledger.handlers.base import run, envelope
from ledger.services import reports

bp = Blueprint("reports", __name__)


def _load_rows(owner_id):
    start, end = reports.parse_period(request.args.get("startDate"), request.args.get("endDate"))
    rows = run(reports.spending_rows, owner_id, start, end, request.args.get("categoryId"))
    return rows, start, end


@bp.route("/reports/spending/<owner_id>", methods=["GET"])
def spending(owner_id):
    rows, _, _ = _load_rows(owner_id)
    return envelope({"rows": rows, "summary": reports.summarize_spending(rows)})


@bp.route("/reports/spending/<owner_id>/chart.png", methods=["GET"])
def spending_chart(owner_id):
    rows, start, end = _load_rows(owner_id)
    buf = reports.render_spending_chart(rows, start, end)
    return send_file(buf, mimetype="image/png", download_name="spending.png")
