# handlers/plaid_handler.py
from flask import Blueprint, current_app, request

from ledger.errors import PlaidError, ValidationError
from ledger.handlers.base import run, json_body, envelope
from ledger.services import plaid

bp = Blueprint("plaid", __name__, url_prefix="/plaid")


def get_client():
    client = current_app.config.get("PLAID_CLIENT")
    if client is None:
        raise PlaidError("Plaid is not configured")
    return client


@bp.route("/link-token", methods=["POST"])
def create_link_token():
    body = json_body("ownerId")
    token = get_client().create_link_token(body["ownerId"])
    return envelope({"link_token": token.get("link_token"), "expiration": token.get("expiration")})


@bp.route("/exchange-public-token", methods=["POST"])
def exchange_public_token():
    body = json_body("publicToken", "ownerId")
    item = run(plaid.link_item, get_client(), body["ownerId"], body["publicToken"])
    return envelope(item.to_dict(), 201)


@bp.route("/sync", methods=["POST"])
def sync():
    body = request.get_json(silent=True) or {}
    counts = run(plaid.sync_owner, get_client(), body.get("ownerId"), body.get("itemId"))
    return envelope(counts)


@bp.route("/webhook", methods=["POST"])
def webhook():
    body = json_body("webhook_type", "item_id")
    return envelope(run(plaid.handle_webhook, get_client(), body))


@bp.route("/accounts/<owner_id>", methods=["GET"])
def list_accounts(owner_id):
    return envelope(run(plaid.list_accounts, owner_id))


@bp.route("/accounts/refresh", methods=["POST"])
def refresh_accounts():
    body = json_body("ownerId")
    return envelope(run(plaid.refresh_accounts, get_client(), body["ownerId"]))


@bp.route("/accounts/<int:account_id>", methods=["DELETE"])
def delete_account(account_id):
    owner_id = request.args.get("ownerId")
    if not owner_id:
        raise ValidationError("ownerId is required")
    account = run(plaid.deactivate_account, owner_id, account_id)
    return envelope(account.to_dict())


@bp.route("/transactions/<owner_id>", methods=["GET"])
def list_bank_transactions(owner_id):
    unsynced = request.args.get("unsynced") in ("1", "true")
    rows = run(plaid.list_plaid_transactions, owner_id, unsynced)
    return envelope([row.to_dict() for row in rows])


@bp.route("/transactions/<transaction_id>/import", methods=["POST"])
def import_transaction(transaction_id):
    body = json_body("ownerId")
    entry, category = run(
        plaid.import_plaid_transaction,
        body["ownerId"],
        transaction_id,
        body.get("categoryId"),
    )
    return envelope({
        "transaction": entry.to_dict(),
        "budget": category.to_dict() if category is not None else None,
    }, 201)
