"""Daily prediction quota for signed-in users.

Each successful prediction by a signed-in user inserts a ``usage_events``
row. The quota check counts today's rows (UTC day) against the plan limit.
Anonymous callers have no quota; every caller is also throttled per IP by the
rate limiter.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone

from modcalc.core.config import get_settings
from modcalc.core.enums import PLAN_DAILY_LIMITS, Plan
from modcalc.core.logging import log_db_query
from modcalc.services.db import get_supabase_client


@dataclass
class UsageStatus:
    plan: Plan
    limit: int
    used: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit

    def as_dict(self) -> dict[str, object]:
        return {
            "plan": self.plan.value,
            "limit": self.limit,
            "used": self.used,
            "remaining": self.remaining,
        }


def current_plan() -> Plan:
    """Plan applied to every signed-in user until billing is wired up."""
    return Plan.from_string(get_settings().default_plan)


def plan_limit(plan: Plan) -> int:
    return PLAN_DAILY_LIMITS[plan]


def start_of_day(now: datetime | None = None) -> datetime:
    """Midnight UTC of the day containing ``now``."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def count_usage_today(user_id: str, now: datetime | None = None) -> int:
    """Count the user's usage events since midnight UTC."""
    start = time.time()
    result = (
        get_supabase_client()
        .table("usage_events")
        .select("*", count="exact", head=True)
        .gte("occurred_at", start_of_day(now).isoformat())
        .eq("user_id", user_id)
        .execute()
    )
    log_db_query("count_today", "usage_events", (time.time() - start) * 1000)
    return result.count or 0


def record_usage(user_id: str) -> None:
    """Record one successful prediction."""
    start = time.time()
    get_supabase_client().table("usage_events").insert({"user_id": user_id}).execute()
    log_db_query("insert", "usage_events", (time.time() - start) * 1000)


def get_usage_status(user_id: str | None) -> UsageStatus:
    """Usage for ``user_id``; anonymous callers report zero server-side usage."""
    plan = current_plan()
    used = count_usage_today(user_id) if user_id else 0
    return UsageStatus(plan=plan, limit=plan_limit(plan), used=used)
