class MarketplaceError(Exception):
    """Base exception for matching engine errors."""
    code = "marketplace_error"

class ValidationError(MarketplaceError):
    """Malformed input. The caller should re-prompt."""
    code = "validation_error"

# --- Policy violations: expected business outcomes, not bugs ---

class PolicyViolation(MarketplaceError):
    code = "policy_violation"

class WageLocked(PolicyViolation):
    code = "wage_locked"

class WorkerCountLocked(PolicyViolation):
    code = "worker_count_locked"

class CapacityExceeded(PolicyViolation):
    code = "capacity_exceeded"

    def __init__(self, job_id, required_workers):
        super().__init__(f"Job {job_id} already has all {required_workers} positions filled")
        self.job_id = job_id
        self.required_workers = required_workers

class PositionsFilled(PolicyViolation):
    code = "positions_filled"

    def __init__(self, job_id):
        super().__init__(f"All positions for job {job_id} have been filled")
        self.job_id = job_id

class CooldownActive(PolicyViolation):
    code = "cooldown_active"

    def __init__(self, hours_left):
        super().__init__(f"You can reapply in {hours_left} hours after being rejected")
        self.hours_left = hours_left

class AlreadyPending(PolicyViolation):
    code = "already_pending"

    def __init__(self, job_id):
        super().__init__(f"An application for job {job_id} is already pending")

class AlreadyAccepted(PolicyViolation):
    code = "already_accepted"

    def __init__(self, job_id):
        super().__init__(f"Application for job {job_id} has already been accepted")

class JobCompleted(PolicyViolation):
    code = "job_completed"

    def __init__(self, job_id):
        super().__init__(f"Job {job_id} is completed and can no longer be changed")
        self.job_id = job_id

class NotInProgress(PolicyViolation):
    code = "not_in_progress"

    def __init__(self, job_id, current_status):
        super().__init__(f"Job {job_id} is {current_status}; only in-progress jobs can be completed")
        self.current_status = current_status

class InvalidStatusChange(PolicyViolation):
    code = "invalid_status_change"

    def __init__(self, current_status, target_status, reason=None):
        message = f"Cannot transition from {current_status} to {target_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

# --- Lookups ---

class NotFoundError(MarketplaceError):
    code = "not_found"

class JobNotFoundError(NotFoundError):
    def __init__(self, job_id):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id

class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id):
        super().__init__(f"Application {application_id} not found")
        self.application_id = application_id

# --- Storage ---

class PersistenceError(MarketplaceError):
    code = "persistence_error"

class StaleWriteError(PersistenceError):
    """Row changed between read and conditional write."""
    code = "stale_write"

    def __init__(self, entity_id, expected_version):
        super().__init__(f"{entity_id} was modified concurrently (expected version {expected_version})")
        self.entity_id = entity_id
        self.expected_version = expected_version
