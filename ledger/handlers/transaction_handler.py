# handlers/transaction_handler.py
from flask import Blueprint

from ledger.handlers.base import run, json_body, number_field, envelope
from ledger.services import ledger

bp = Blueprint("transactions", __name__)


def _budget(category):
    return category.to_dict() if category is not None else None


@bp.route("/transactions", methods=["POST"])
def create_transaction():
    body = json_body("name", "categoryId", "amount", "ownerId")
    amount = number_field(body, "amount")
    entry, category = run(
        ledger.post_transaction,
        body["ownerId"],
        body["categoryId"],
        body["name"],
        amount,
        body.get("type") or "expense",
    )
    return envelope({"transaction": entry.to_dict(), "budget": _budget(category)}, 201)


@bp.route("/transactions/<entry_id>", methods=["DELETE"])
def delete_transaction(entry_id):
    result = run(ledger.reverse_transaction, entry_id)
    return envelope({
        "transaction": result.entry.to_dict(),
        "budget": _budget(result.category),
        "balanceRestored": result.balance_restored,
    })


@bp.route("/transactions/<entry_id>", methods=["PUT"])
def update_transaction(entry_id):
    body = json_body("name", "amount")
    amount = number_field(body, "amount")
    entry, category = run(
        ledger.amend_transaction,
        entry_id,
        body["name"],
        amount,
        body.get("categoryId"),
    )
    return envelope({"transaction": entry.to_dict(), "budget": _budget(category)})


@bp.route("/users/<owner_id>/transactions", methods=["GET"])
def list_transactions(owner_id):
    entries = run(ledger.list_transactions, owner_id)
    return envelope([entry.to_dict() for entry in entries])
