# models/category.py
import uuid

from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from . import Base, utcnow

CATEGORY_TYPES = ("expense", "savings", "income")
RESET_PERIODS = ("weekly", "monthly")


class Category(Base):
    __tablename__ = "budget_categories"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), ForeignKey("users.clerk_id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # 'expense', 'savings' or 'income'
    period = Column(String, nullable=False, default="monthly")  # reset cadence
    budget = Column(Numeric(12, 2), nullable=False)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_reset = Column(DateTime, default=utcnow, nullable=False)

    owner = relationship("User", back_populates="categories")

    @property
    def opening_balance(self):
        """Balance right after creation or a reset."""
        return 0 if self.type == "savings" else self.budget

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "category": self.name,
            "type": self.type,
            "period": self.period,
            "budget": float(self.budget),
            "balance": float(self.balance),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_reset": self.last_reset.isoformat() if self.last_reset else None,
        }
