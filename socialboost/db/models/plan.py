from sqlalchemy import Column, Integer, String, Float, DateTime, JSON
from sqlalchemy.sql import func
from socialboost.db.base import Base


class Plan(Base):
    """
    Pricing plan, created lazily from the first checkout that names it.

    Name is unique in practice only; prices are a cache of the first checkout
    and are never rewritten by billing reconciliation.
    """
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    monthly_price = Column(Float, nullable=False)
    annual_price = Column(Float, nullable=False)
    features = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
