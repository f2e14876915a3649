# services/plaid.py
# PlaidClient wraps the Plaid endpoints the service needs; the module functions
# link items, mirror accounts and bank transactions, and import them into the ledger.
import datetime
from decimal import Decimal

import requests
import structlog

from ledger.errors import ConflictError, NotFoundError, PlaidError, ValidationError
from ledger.models import utcnow
from ledger.models.plaid import PlaidAccount, PlaidItem, PlaidTransaction
from ledger.models.user import User
from ledger.services.ledger import post_transaction, record_entry

log = structlog.get_logger(__name__)

PLAID_HOSTS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}


class PlaidClient:
    def __init__(self, client_id, secret, env="sandbox", timeout=10):
        if env not in PLAID_HOSTS:
            raise ValueError(f"Unknown Plaid environment '{env}'")
        self.client_id = client_id
        self.secret = secret
        self.base_url = PLAID_HOSTS[env]
        self.timeout = timeout

    def _post(self, path, payload):
        body = dict(payload, client_id=self.client_id, secret=self.secret)
        try:
            resp = requests.post(self.base_url + path, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise PlaidError(f"Plaid request to {path} failed: {e}")
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.status_code != 200:
            raise PlaidError(
                data.get("error_message") or f"Plaid returned HTTP {resp.status_code}",
                error_code=data.get("error_code"),
                http_status=resp.status_code,
            )
        return data

    def create_link_token(self, user_id, client_name="Budget Ledger", products=("transactions",)):
        return self._post("/link/token/create", {
            "user": {"client_user_id": user_id},
            "client_name": client_name,
            "products": list(products),
            "country_codes": ["US"],
            "language": "en",
        })

    def exchange_public_token(self, public_token):
        return self._post("/item/public_token/exchange", {"public_token": public_token})

    def get_item(self, access_token):
        return self._post("/item/get", {"access_token": access_token})

    def get_accounts(self, access_token):
        return self._post("/accounts/get", {"access_token": access_token})

    def transactions_sync(self, access_token, cursor=None):
        payload = {"access_token": access_token}
        if cursor:
            payload["cursor"] = cursor
        return self._post("/transactions/sync", payload)


def link_item(session, client, owner_id, public_token):
    """Exchange a Link public token and store the resulting item."""
    if session.query(User).filter(User.clerk_id == owner_id).first() is None:
        raise NotFoundError("User not found")

    exchange = client.exchange_public_token(public_token)
    access_token = exchange["access_token"]
    item_info = client.get_item(access_token).get("item", {})

    item = PlaidItem(
        item_id=exchange["item_id"],
        access_token=access_token,
        institution_id=item_info.get("institution_id"),
        owner_id=owner_id,
    )
    session.add(item)
    session.flush()
    accounts = store_accounts(session, item, client.get_accounts(access_token).get("accounts", []))
    log.info("plaid_item_linked", item_id=item.item_id, owner_id=owner_id, accounts=accounts)
    return item


def _apply_fields(row, data):
    categories = data.get("category") or []
    row.account_id = data.get("account_id")
    row.name = data.get("name")
    row.merchant_name = data.get("merchant_name")
    row.amount = Decimal(str(data.get("amount", 0)))
    row.date = datetime.date.fromisoformat(data["date"]) if data.get("date") else None
    row.category = categories[0] if categories else None
    row.pending = bool(data.get("pending", False))
    row.iso_currency_code = data.get("iso_currency_code") or "USD"
    row.updated_at = utcnow()


def sync_item(session, client, item):
    """
    Page through transactions/sync for one item and store the new cursor.
    """
    counts = {"added": 0, "modified": 0, "removed": 0}
    cursor = item.cursor
    has_more = True
    while has_more:
        page = client.transactions_sync(item.access_token, cursor)
        # rows inserted in this page are not flushed yet, so lookups go through here first
        pending_rows = {}
        for data in page.get("added", []) + page.get("modified", []):
            transaction_id = data["transaction_id"]
            row = pending_rows.get(transaction_id) or (
                session.query(PlaidTransaction)
                .filter(PlaidTransaction.transaction_id == transaction_id)
                .first()
            )
            if row is None:
                row = PlaidTransaction(
                    transaction_id=transaction_id,
                    item_id=item.id,
                    owner_id=item.owner_id,
                )
                session.add(row)
                pending_rows[transaction_id] = row
                counts["added"] += 1
            else:
                counts["modified"] += 1
            _apply_fields(row, data)
        session.flush()
        for data in page.get("removed", []):
            counts["removed"] += (
                session.query(PlaidTransaction)
                .filter(PlaidTransaction.transaction_id == data["transaction_id"])
                .delete(synchronize_session=False)
            )
        cursor = page.get("next_cursor")
        has_more = page.get("has_more", False)

    item.cursor = cursor
    session.flush()
    log.info("plaid_item_synced", item_id=item.item_id, **counts)
    return counts


def sync_owner(session, client, owner_id=None, item_id=None):
    if not owner_id and not item_id:
        raise ValidationError("Provide itemId or ownerId")
    query = session.query(PlaidItem)
    if item_id:
        query = query.filter(PlaidItem.item_id == item_id)
    else:
        query = query.filter(PlaidItem.owner_id == owner_id)
    items = query.all()
    if not items:
        raise NotFoundError("No items found")
    return {item.item_id: sync_item(session, client, item) for item in items}


def _money(value):
    return Decimal(str(value)) if value is not None else None


def store_accounts(session, item, accounts):
    """Upsert the item's accounts from an ``/accounts/get`` payload."""
    existing = {
        account.account_id: account
        for account in session.query(PlaidAccount).filter(PlaidAccount.item_id == item.id)
    }
    now = utcnow()
    for data in accounts:
        account = existing.get(data["account_id"])
        if account is None:
            account = PlaidAccount(account_id=data["account_id"], item_id=item.id, owner_id=item.owner_id)
            session.add(account)
            existing[account.account_id] = account
        balances = data.get("balances") or {}
        account.name = data.get("name")
        account.official_name = data.get("official_name")
        account.type = data.get("type")
        account.subtype = data.get("subtype")
        account.mask = data.get("mask")
        account.current_balance = _money(balances.get("current"))
        account.available_balance = _money(balances.get("available"))
        account.credit_limit = _money(balances.get("limit"))
        account.last_balance_update = now
        account.updated_at = now
    session.flush()
    return len(accounts)


def list_accounts(session, owner_id):
    """
    Active accounts of an owner with a net-worth summary.

    Credit and loan balances count as liabilities, everything else as assets.
    """
    query = (
        session.query(PlaidAccount, PlaidItem.institution_id)
        .outerjoin(PlaidItem, PlaidItem.id == PlaidAccount.item_id)
        .filter(PlaidAccount.owner_id == owner_id, PlaidAccount.is_active.is_(True))
        .order_by(PlaidAccount.created_at.desc(), PlaidAccount.id.desc())
    )
    accounts = []
    assets = Decimal("0")
    liabilities = Decimal("0")
    for account, institution_id in query.all():
        balance = account.current_balance or Decimal("0")
        if account.is_liability:
            liabilities += abs(balance)
        else:
            assets += balance
        data = account.to_dict()
        data["institution_id"] = institution_id
        accounts.append(data)
    return {
        "accounts": accounts,
        "summary": {
            "total_accounts": len(accounts),
            "total_assets": float(assets),
            "total_liabilities": float(liabilities),
            "net_worth": float(assets - liabilities),
        },
    }


def refresh_accounts(session, client, owner_id):
    """
    Pull fresh balances for every item of an owner.

    A failing item does not stop the others; its error is reported back.
    """
    items = session.query(PlaidItem).filter(PlaidItem.owner_id == owner_id).all()
    if not items:
        raise NotFoundError("No items found")
    updated = 0
    errors = []
    for item in items:
        try:
            payload = client.get_accounts(item.access_token)
        except PlaidError as e:
            log.warning("plaid_accounts_refresh_failed", item_id=item.item_id, error=e.message)
            errors.append({"item_id": item.item_id, "error": e.message})
            continue
        updated += store_accounts(session, item, payload.get("accounts", []))
    return {"accounts_updated": updated, "errors": errors}


def deactivate_account(session, owner_id, account_id):
    """Unlink one account; the row stays for history with ``is_active`` off."""
    account = (
        session.query(PlaidAccount)
        .filter(PlaidAccount.id == account_id, PlaidAccount.owner_id == owner_id)
        .first()
    )
    if account is None:
        raise NotFoundError("Account not found")
    account.is_active = False
    account.updated_at = utcnow()
    session.flush()
    log.info("plaid_account_deactivated", account_id=account.account_id, owner_id=owner_id)
    return account


TRANSACTION_UPDATE_CODES = (
    "SYNC_UPDATES_AVAILABLE",
    "INITIAL_UPDATE",
    "HISTORICAL_UPDATE",
    "DEFAULT_UPDATE",
)


def handle_webhook(session, client, payload):
    """
    React to a Plaid webhook for a known item.

    Transaction updates run a cursor sync, removals drop the named rows, and a
    revoked or broken login deactivates the item's accounts. Anything else is
    acknowledged and ignored.
    """
    webhook_type = payload.get("webhook_type")
    webhook_code = payload.get("webhook_code")
    item_id = payload.get("item_id")
    if not webhook_type or not item_id:
        raise ValidationError("webhook_type and item_id are required")

    item = session.query(PlaidItem).filter(PlaidItem.item_id == item_id).first()
    if item is None:
        raise NotFoundError("Item not found")

    result = {"received": True, "action": "ignored"}
    if webhook_type == "TRANSACTIONS" and webhook_code in TRANSACTION_UPDATE_CODES:
        result["action"] = "synced"
        result["counts"] = sync_item(session, client, item)
    elif webhook_type == "TRANSACTIONS" and webhook_code == "TRANSACTIONS_REMOVED":
        removed = payload.get("removed_transactions") or []
        result["action"] = "removed"
        result["removed"] = 0
        if removed:
            result["removed"] = (
                session.query(PlaidTransaction)
                .filter(
                    PlaidTransaction.item_id == item.id,
                    PlaidTransaction.transaction_id.in_(removed),
                )
                .delete(synchronize_session=False)
            )
    elif webhook_type == "ITEM" and (
        webhook_code == "USER_PERMISSION_REVOKED"
        or (webhook_code == "ERROR" and (payload.get("error") or {}).get("error_code") == "ITEM_LOGIN_REQUIRED")
    ):
        result["action"] = "deactivated"
        result["accounts"] = (
            session.query(PlaidAccount)
            .filter(PlaidAccount.item_id == item.id)
            .update({"is_active": False, "updated_at": utcnow()}, synchronize_session=False)
        )

    log.info(
        "plaid_webhook",
        webhook_type=webhook_type,
        webhook_code=webhook_code,
        item_id=item_id,
        action=result["action"],
    )
    return result


def list_plaid_transactions(session, owner_id, unsynced_only=False):
    query = session.query(PlaidTransaction).filter(PlaidTransaction.owner_id == owner_id)
    if unsynced_only:
        query = query.filter(PlaidTransaction.is_synced_to_transactions.is_(False))
    return query.order_by(PlaidTransaction.date.desc()).all()


def import_plaid_transaction(session, owner_id, transaction_id, category_id=None):
    """
    Turn a bank transaction into a ledger entry and mark it as synced.

    With a category this is a regular posting; without one the entry is
    recorded on its own, as income when money came into the account.
    Returns ``(entry, category_or_None)``.
    """
    row = (
        session.query(PlaidTransaction)
        .filter(
            PlaidTransaction.transaction_id == transaction_id,
            PlaidTransaction.owner_id == owner_id,
        )
        .with_for_update()
        .first()
    )
    if row is None:
        raise NotFoundError("Bank transaction not found")
    if row.is_synced_to_transactions:
        raise ConflictError("Bank transaction already imported")
    if row.amount == 0:
        raise ValidationError("Bank transaction has a zero amount and cannot be imported")

    name = row.merchant_name or row.name or "Bank transaction"
    amount = abs(row.amount)
    entry_type = "income" if row.amount < 0 else "expense"
    category = None
    if category_id:
        entry, category = post_transaction(session, owner_id, category_id, name, amount, entry_type)
        entry.plaid_transaction_id = transaction_id
    else:
        entry = record_entry(session, owner_id, name, amount, entry_type,
                             plaid_transaction_id=transaction_id)

    row.is_synced_to_transactions = True
    row.updated_at = utcnow()
    session.flush()
    log.info("plaid_transaction_imported", transaction_id=transaction_id, entry_id=entry.id)
    return entry, category
