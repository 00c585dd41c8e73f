from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from socialboost.db.base import Base


class CampaignStatus:
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


def default_metrics() -> dict:
    return {"impressions": 0, "engagements": 0, "followers": 0, "last_updated": None}


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id", use_alter=True, name="fk_campaigns_subscription_id"), nullable=True)
    status = Column(String, nullable=False, default=CampaignStatus.DRAFT)  # draft | active | paused | completed

    # Targeting preferences
    demographics = Column(JSON, nullable=False, default=dict)  # {"age": [...], "gender": ..., "location": ...}
    interests = Column(JSON, nullable=False, default=list)
    behaviors = Column(JSON, nullable=False, default=list)
    social_media = Column(JSON, nullable=False, default=lambda: {"platform": "instagram", "username": None})

    metrics = Column(JSON, nullable=False, default=default_metrics)

    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
