# models/user.py
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from . import Base, utcnow


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    clerk_id = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    categories = relationship("Category", back_populates="owner")
    transactions = relationship("Transaction", back_populates="owner")

    def to_dict(self):
        return {
            "id": self.id,
            "clerk_id": self.clerk_id,
            "name": self.name,
            "email": self.email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
