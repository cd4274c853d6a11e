# jogofacil/routers/subscriptions.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from jogofacil import models, schemas
from jogofacil.auth import get_current_user
from jogofacil.plans import PLANS, has_active_subscription

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


class SubscriptionStatus(BaseModel):
    plan: str
    active: bool
    expires_at: Optional[datetime] = None

    model_config = schemas.CAMEL


@router.get("/plans", response_model=List[schemas.PlanOut])
def list_plans():
    return PLANS


@router.get("/status", response_model=SubscriptionStatus)
def subscription_status(current_user: models.User = Depends(get_current_user)):
    plan = getattr(current_user.subscription, "value", current_user.subscription) or "NONE"
    return SubscriptionStatus(
        plan=plan,
        active=has_active_subscription(current_user),
        expires_at=current_user.subscription_expiry,
    )
