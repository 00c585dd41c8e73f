from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from socialboost.db.base import Base


class UserRole:
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, nullable=False, default=UserRole.USER)  # user | admin | superadmin

    # Billing identity, healed on every checkout
    stripe_customer_id = Column(String, nullable=True, index=True)

    created_at = Column(DateTime, server_default=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
