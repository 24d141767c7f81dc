from dataclasses import dataclass
from typing import Optional

from farmwork.settings import settings

MIN_WAGE = 1

@dataclass(frozen=True)
class WageDecision:
    can_modify: bool
    reason: Optional[str] = None
    min_wage: Optional[float] = None
    max_wage: Optional[float] = None

def validate_wage_change(
    current_wage: float,
    new_wage: float,
    has_applications: bool,
    accepted_worker_count: int = 0
) -> WageDecision:
    """
    Decides whether a job's wage may be changed to new_wage.

    Rules:
        new_wage <= 0            -> always rejected
        no applications          -> any positive wage
        applications exist       -> only new_wage == current_wage

    The lock is absolute once a worker has applied: the wage may not go up
    or down. accepted_worker_count is accepted for call-site parity with the
    required-workers checks but does not loosen the lock.
    """
    if new_wage <= 0:
        return WageDecision(can_modify=False, reason="Wage must be greater than 0")

    if not has_applications:
        return WageDecision(can_modify=True, min_wage=MIN_WAGE, max_wage=settings.MAX_WAGE)

    if new_wage != current_wage:
        return WageDecision(
            can_modify=False,
            reason=(
                "Cannot change wage when applications exist. Workers applied based on "
                "the original wage amount, and changing it now would be unfair to them."
            ),
            min_wage=current_wage,
            max_wage=current_wage,
        )

    return WageDecision(can_modify=True, min_wage=current_wage, max_wage=current_wage)

def minimum_wage(original_wage: float, has_applications: bool) -> float:
    return original_wage if has_applications else MIN_WAGE

def maximum_wage(original_wage: float, has_applications: bool) -> float:
    return original_wage if has_applications else settings.MAX_WAGE

def is_wage_valid(new_wage: float, original_wage: float, has_applications: bool) -> bool:
    if new_wage <= 0:
        return False
    if has_applications and new_wage != original_wage:
        return False
    return True

def wage_error_message(
    current_wage: float,
    new_wage: float,
    has_applications: bool,
    application_count: int
) -> str:
    """User-facing explanation for a rejected wage. Empty when the wage is acceptable."""
    if new_wage <= 0:
        return "Wage must be greater than 0"

    if not has_applications or new_wage == current_wage:
        return ""

    applied = "1 worker has" if application_count == 1 else f"{application_count} workers have"
    return (
        f"Wage locked at {current_wage:g}. Cannot change wage because {applied} already applied. "
        "Wage changes are disabled once applications are received."
    )
