# models/transaction.py
import uuid

from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from . import Base, utcnow

ENTRY_TYPES = ("expense", "income")


class Transaction(Base):
    __tablename__ = "transactions"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), ForeignKey("users.clerk_id"), nullable=False, index=True)
    # Plain column, not a foreign key: entries survive the deletion of their category.
    category_id = Column(String(36), nullable=True, index=True)
    name = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String, nullable=False, default="expense")  # 'expense' or 'income'
    plaid_transaction_id = Column(String, unique=True, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    owner = relationship("User", back_populates="transactions")

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "category_id": self.category_id,
            "name": self.name,
            "amount": float(self.amount),
            "type": self.type,
            "plaid_transaction_id": self.plaid_transaction_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
