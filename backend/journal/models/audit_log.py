from enum import Enum


class AuditLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class AuditAction(str, Enum):
    SUBMISSION_STATUS_CHANGED = "submission.status_changed"
    REVIEWER_ASSIGNED = "review.reviewer_assigned"
    USER_ROLE_CHANGED = "user.role_changed"
    USER_ACTIVATED = "user.activated"
    USER_DEACTIVATED = "user.deactivated"
