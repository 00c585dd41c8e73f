"""
Pydantic schemas for billing endpoints.
"""
from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, Field


class Demographics(BaseModel):
    age: List[str] = Field(default_factory=list, description="Age brackets, e.g. '18-24'")
    gender: Optional[str] = None
    location: Optional[str] = None


class SocialMedia(BaseModel):
    platform: str = Field("instagram", description="Target social network")
    username: Optional[str] = Field(None, description="Account to grow")


class CampaignPreferences(BaseModel):
    """Targeting preferences captured before checkout."""
    demographics: Optional[Demographics] = None
    interests: Optional[List[str]] = None
    behaviors: Optional[List[str]] = None
    social_media: Optional[SocialMedia] = None


class CreateCheckoutSessionRequest(BaseModel):
    """Request schema for creating checkout session."""
    plan_name: Optional[str] = Field(None, description="Plan name, e.g. 'Pro'")
    # Validated by the service so bad prices get the billing 400, not a 422
    plan_price: Optional[Union[float, str]] = Field(None, description="Price for the chosen billing cadence")
    billing: str = Field("monthly", description="Billing cadence: 'monthly' or 'annual'")
    features: List[str] = Field(default_factory=list)
    preferences: Optional[CampaignPreferences] = None
    campaign_id: Optional[int] = Field(None, description="Existing campaign to bind the subscription to")

    class Config:
        json_schema_extra = {
            "example": {
                "plan_name": "Pro",
                "plan_price": 49,
                "billing": "monthly",
                "features": ["Targeted growth", "Weekly reports"],
                "preferences": {
                    "demographics": {"age": ["18-24"], "gender": "all", "location": "US"},
                    "interests": ["fitness"],
                    "behaviors": ["engaged shoppers"],
                    "social_media": {"platform": "instagram", "username": "example"}
                }
            }
        }


class CreateCheckoutSessionResponse(BaseModel):
    """Response schema for checkout session creation."""
    session_id: str = Field(..., description="Stripe checkout session ID")

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "cs_test_..."
            }
        }


class CheckoutSessionResult(BaseModel):
    """Order summary shown on the payment success page."""
    success: bool = True
    order_id: str
    plan_name: Optional[str]
    amount: float
    billing: str


class PlanOut(BaseModel):
    id: int
    name: str
    monthly_price: float
    annual_price: float
    features: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CampaignOut(BaseModel):
    id: int
    status: str
    demographics: dict = Field(default_factory=dict)
    interests: List[str] = Field(default_factory=list)
    behaviors: List[str] = Field(default_factory=list)
    social_media: dict = Field(default_factory=dict)
    metrics: dict = Field(default_factory=dict)
    start_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubscriptionOut(BaseModel):
    id: int
    plan_name: Optional[str]
    amount: float
    billing_type: str
    status: str
    start_date: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    plan: Optional[PlanOut] = None
    campaign: Optional[CampaignOut] = None

    class Config:
        from_attributes = True


class PaymentOut(BaseModel):
    """A payment as listed in the user's order history."""
    id: int
    order_id: str
    amount: float
    currency: str
    status: str
    date: datetime
    payment_method: str
    receipt_url: Optional[str] = None
    subscription_name: Optional[str] = None


class Pagination(BaseModel):
    current: int
    total: int = Field(..., description="Number of pages")
    count: int = Field(..., description="Number of payments")


class PaymentHistoryResponse(BaseModel):
    payments: List[PaymentOut]
    pagination: Pagination


class OrdersSummary(BaseModel):
    subscription: Optional[SubscriptionOut] = None
    payments: List[PaymentOut]
    campaigns: List[CampaignOut]


class AdminCancelRequest(BaseModel):
    cancel_immediately: bool = Field(False, description="Cancel now instead of at period end")


class SubscriptionActionResponse(BaseModel):
    message: str
    subscription: SubscriptionOut


class WebhookAck(BaseModel):
    received: bool = True
    error: Optional[str] = None
    note: Optional[str] = None


class BillingErrorResponse(BaseModel):
    """Error response schema for billing operations."""
    message: str = Field(..., description="Error message")
    detail: Optional[Union[str, dict]] = Field(None, description="Additional error details (non-production only)")

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Plan price must be a valid positive number",
                "detail": None
            }
        }
