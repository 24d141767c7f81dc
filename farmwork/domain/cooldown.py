import math
from datetime import datetime, timezone
from typing import Optional

from farmwork.domain.models import Application
from farmwork.domain.states import ApplicationStatus
from farmwork.settings import settings

REAPPLY_COOLDOWN_HOURS = settings.REAPPLY_COOLDOWN_HOURS

def _aware(value: datetime) -> datetime:
    # Naive timestamps are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def hours_since(rejected_at: datetime, now: Optional[datetime] = None) -> float:
    now = _aware(now or datetime.now(timezone.utc))
    return (now - _aware(rejected_at)).total_seconds() / 3600

def can_reapply(rejected_at: datetime, now: Optional[datetime] = None) -> bool:
    return hours_since(rejected_at, now) >= REAPPLY_COOLDOWN_HOURS

def hours_until_reapply(rejected_at: datetime, now: Optional[datetime] = None) -> int:
    """
    Whole hours left before a rejected worker may apply again.

    Rounded up so a blocked worker is never told "0 hours left".
    Returns 0 once the cooldown has elapsed.
    """
    remaining = REAPPLY_COOLDOWN_HOURS - hours_since(rejected_at, now)
    if remaining <= 0:
        return 0
    return math.ceil(remaining)

def application_can_reapply(application: Application, now: Optional[datetime] = None) -> bool:
    if application.status != ApplicationStatus.REJECTED:
        return False
    if application.rejected_at is None:
        # Rejections recorded without a timestamp carry no cooldown
        return True
    return can_reapply(application.rejected_at, now)
