# models/plaid.py
from sqlalchemy import Column, Integer, String, Numeric, Boolean, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from . import Base, utcnow


class PlaidItem(Base):
    __tablename__ = "plaid_items"
    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(String, unique=True, nullable=False)
    access_token = Column(String, nullable=False)
    institution_id = Column(String, nullable=True)
    owner_id = Column(String(64), ForeignKey("users.clerk_id"), nullable=False, index=True)
    cursor = Column(String, nullable=True)  # transactions/sync position
    created_at = Column(DateTime, default=utcnow, nullable=False)

    transactions = relationship("PlaidTransaction", back_populates="item")
    accounts = relationship("PlaidAccount", back_populates="item")

    def to_dict(self):
        return {
            "id": self.id,
            "item_id": self.item_id,
            "institution_id": self.institution_id,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class PlaidTransaction(Base):
    __tablename__ = "plaid_transactions"
    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(String, unique=True, nullable=False)
    item_id = Column(Integer, ForeignKey("plaid_items.id"), nullable=False)
    account_id = Column(String, nullable=True)
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(String, nullable=True)
    merchant_name = Column(String, nullable=True)
    # Plaid sign convention: positive is money leaving the account.
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(Date, nullable=True)
    category = Column(String, nullable=True)
    pending = Column(Boolean, default=False)
    iso_currency_code = Column(String, default="USD")
    is_synced_to_transactions = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    item = relationship("PlaidItem", back_populates="transactions")

    def to_dict(self):
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "account_id": self.account_id,
            "owner_id": self.owner_id,
            "name": self.name,
            "merchant_name": self.merchant_name,
            "amount": float(self.amount),
            "date": self.date.isoformat() if self.date else None,
            "category": self.category,
            "pending": self.pending,
            "iso_currency_code": self.iso_currency_code,
            "is_synced_to_transactions": self.is_synced_to_transactions,
        }


class PlaidAccount(Base):
    __tablename__ = "plaid_accounts"
    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(String, unique=True, nullable=False)
    item_id = Column(Integer, ForeignKey("plaid_items.id"), nullable=False)
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(String, nullable=True)
    official_name = Column(String, nullable=True)
    type = Column(String, nullable=True)  # depository, credit, loan, investment
    subtype = Column(String, nullable=True)
    mask = Column(String, nullable=True)
    current_balance = Column(Numeric(12, 2), nullable=True)
    available_balance = Column(Numeric(12, 2), nullable=True)
    credit_limit = Column(Numeric(12, 2), nullable=True)
    last_balance_update = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    item = relationship("PlaidItem", back_populates="accounts")

    @property
    def is_liability(self):
        return self.type in ("credit", "loan")

    def to_dict(self):
        def money(value):
            return float(value) if value is not None else 0.0

        return {
            "id": self.id,
            "account_id": self.account_id,
            "name": self.name,
            "official_name": self.official_name,
            "type": self.type,
            "subtype": self.subtype,
            "mask": self.mask,
            "current_balance": money(self.current_balance),
            "available_balance": money(self.available_balance),
            "credit_limit": money(self.credit_limit),
            "last_balance_update": self.last_balance_update.isoformat() if self.last_balance_update else None,
            "is_active": self.is_active,
        }
