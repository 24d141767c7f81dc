from enum import StrEnum, auto

class JobStatus(StrEnum):
    OPEN = "open"                 # Posted, accepting applications
    FILLED = "filled"             # Every required position has an accepted worker
    IN_PROGRESS = "in-progress"   # Work date reached with at least one accepted worker
    COMPLETED = "completed"       # Closed by the farmer, terminal

class ApplicationStatus(StrEnum):
    PENDING = auto()
    ACCEPTED = auto()
    REJECTED = auto()

class Decision(StrEnum):
    ACCEPT = auto()
    REJECT = auto()

class DurationType(StrEnum):
    HOURS = auto()
    DAYS = auto()

# Automatic edges of the lifecycle. COMPLETED is only reached through an
# explicit farmer action and has no outgoing edges.
FORWARD_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.OPEN: frozenset({JobStatus.FILLED, JobStatus.IN_PROGRESS}),
    JobStatus.FILLED: frozenset({JobStatus.IN_PROGRESS}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.COMPLETED}),
    JobStatus.COMPLETED: frozenset(),
}
