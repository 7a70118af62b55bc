"""Subscription plan and ledger schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class PlanType(str, Enum):
    """Doctor subscription tiers."""

    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    """Subscription status enumeration."""

    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"


class SubscriptionPlan(BaseModel):
    """A monthly plan offered to doctors."""

    plan_type: PlanType
    name: str
    amount: int
    duration: str = "monthly"


SUBSCRIPTION_PLANS: dict[PlanType, SubscriptionPlan] = {
    PlanType.BASIC: SubscriptionPlan(plan_type=PlanType.BASIC, name="Basic Plan", amount=2000),
    PlanType.PREMIUM: SubscriptionPlan(
        plan_type=PlanType.PREMIUM, name="Premium Plan", amount=5000
    ),
    PlanType.ENTERPRISE: SubscriptionPlan(
        plan_type=PlanType.ENTERPRISE, name="Enterprise Plan", amount=10000
    ),
}


class SubscriptionResponse(BaseModel):
    """Schema for a subscription row."""

    id: UUID
    doctor_id: UUID
    plan_type: PlanType
    amount: int
    status: SubscriptionStatus
    tracking_id: str | None = None
    checkout_id: str | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CurrentSubscriptionResponse(BaseModel):
    """Whether the doctor is subscribed right now, and the latest row."""

    is_active: bool
    subscription: SubscriptionResponse | None = None
