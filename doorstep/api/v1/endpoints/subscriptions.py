"""Subscription plan endpoints."""

from fastapi import APIRouter

from doorstep.dependencies import CurrentDoctor, DatabaseSession
from doorstep.schemas.subscriptions import (
    SUBSCRIPTION_PLANS,
    CurrentSubscriptionResponse,
    SubscriptionPlan,
)
from doorstep.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.get("/plans", response_model=list[SubscriptionPlan])
async def list_plans() -> list[SubscriptionPlan]:
    """Plans a doctor can subscribe to."""
    return list(SUBSCRIPTION_PLANS.values())


@router.get("/me", response_model=CurrentSubscriptionResponse)
async def get_my_subscription(
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> CurrentSubscriptionResponse:
    """The doctor's latest subscription and whether it is active now."""
    return await SubscriptionService(db).current(current_doctor.id)
