"""
Find-or-create pricing plans from the (name, price, billing) submitted at checkout.
"""
import logging
import math
from typing import Iterable, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from socialboost.core.errors import BillingValidationError
from socialboost.db.models.plan import Plan
from socialboost.db.models.subscription import BillingType

logger = logging.getLogger(__name__)

# Annual billing gives one month free
ANNUAL_BILLED_MONTHS = 11


def validate_plan_input(name: Optional[str], price) -> Tuple[str, float]:
    """Return (stripped name, float price) or raise BillingValidationError."""
    if not name or not str(name).strip():
        raise BillingValidationError("Plan name is required")

    try:
        value = float(price)
    except (TypeError, ValueError):
        raise BillingValidationError("Plan price must be a valid positive number")

    if not math.isfinite(value) or value <= 0:
        raise BillingValidationError("Plan price must be a valid positive number")

    return str(name).strip(), value


def derive_prices(price: float, billing: str) -> Tuple[float, float]:
    """
    Derive (monthly_price, annual_price) from a single submitted price.

    A monthly price P implies an annual price of P * 12 / 11; an annual price A
    implies a monthly price of A / 12.
    """
    if billing == BillingType.ANNUAL:
        return price / 12, price
    return price, price * 12 / ANNUAL_BILLED_MONTHS


def resolve_plan(
    db: Session,
    name: str,
    price,
    billing: str = BillingType.MONTHLY,
    features: Optional[Iterable[str]] = None,
) -> Plan:
    """
    Return the Plan named `name`, creating it when none exists.

    Existing plans are returned as-is even when their stored prices differ from
    the submitted one.
    """
    name, value = validate_plan_input(name, price)

    plan = db.query(Plan).filter(Plan.name == name).order_by(Plan.id.asc()).first()
    if plan:
        return plan

    monthly_price, annual_price = derive_prices(value, billing)
    plan = Plan(
        name=name,
        monthly_price=monthly_price,
        annual_price=annual_price,
        features=list(features or []),
    )

    try:
        db.add(plan)
        db.commit()
        db.refresh(plan)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Plan creation error: name={name}, error={e}")
        raise BillingValidationError("Failed to create plan", detail=str(e))

    logger.info(f"Created plan: plan_id={plan.id}, name={name}, monthly={monthly_price:.2f}, annual={annual_price:.2f}")
    return plan
