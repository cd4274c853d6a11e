"""
Subscription plan catalogue and expiry helpers.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from jogofacil.models import SubscriptionPlan, User, UserRole

PLANS = [
    {
        "id": SubscriptionPlan.weekly,
        "name": "Avulso (Semanal)",
        "price": 9.90,
        "price_label": "R$ 9,90",
        "period": "/semana",
        "days": 7,
        "features": ["Acesso total por 7 dias", "Busca de adversários", "Suporte básico"],
    },
    {
        "id": SubscriptionPlan.monthly,
        "name": "Mensal",
        "price": 29.90,
        "price_label": "R$ 29,90",
        "period": "/mês",
        "days": 30,
        "features": [
            "Acesso total por 30 dias",
            "Prioridade na busca",
            "Verificação de pagamentos",
            "Recorrência de jogos",
        ],
    },
    {
        "id": SubscriptionPlan.annual,
        "name": "Anual",
        "price": 199.90,
        "price_label": "R$ 199,90",
        "period": "/ano",
        "days": 365,
        "features": [
            "Acesso total por 365 dias",
            "Economia de 45%",
            "Selo de verificado",
            "Painel administrativo completo",
        ],
    },
]

PLAN_DAYS = {p["id"]: p["days"] for p in PLANS}


def plan_duration(plan: SubscriptionPlan) -> Optional[timedelta]:
    """None for plans that never expire (FREE) or grant nothing (NONE)."""
    days = PLAN_DAYS.get(plan)
    return timedelta(days=days) if days else None


def expiry_for(plan: SubscriptionPlan, now: Optional[datetime] = None) -> Optional[datetime]:
    duration = plan_duration(plan)
    if duration is None:
        return None
    return (now or datetime.utcnow()) + duration


def has_active_subscription(user: User, now: Optional[datetime] = None) -> bool:
    plan = getattr(user, "subscription", None) or SubscriptionPlan.none
    if plan == SubscriptionPlan.free:
        return True
    if plan == SubscriptionPlan.none:
        return False
    expiry = getattr(user, "subscription_expiry", None)
    if expiry is None:
        return False
    return expiry > (now or datetime.utcnow())


def initial_plan_for(role) -> SubscriptionPlan:
    # Field owners list for free; captains pay before searching.
    return SubscriptionPlan.free if role == UserRole.field_owner else SubscriptionPlan.none
