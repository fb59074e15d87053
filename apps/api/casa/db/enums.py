"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    User roles. Every user belongs to exactly one organization.

    - VOLUNTEER: Advocate assigned to youth cases; manages own profile only
    - SUPERVISOR: Oversees volunteers in the organization
    - CASA_ADMIN: Organization administrator (reimbursements, full volunteer management)
    """
    VOLUNTEER = "volunteer"
    SUPERVISOR = "supervisor"
    CASA_ADMIN = "casa_admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class JobType(str, Enum):
    """Types of background jobs."""
    SEND_EMAIL = "send_email"
    SUPERVISOR_DIGEST = "supervisor_digest"


class JobStatus(str, Enum):
    """Status of background jobs."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class EmailStatus(str, Enum):
    """Status of outbound emails."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class EmailTemplate(str, Enum):
    """System notification emails."""
    ACCOUNT_SETUP = "account_setup"
    ACCOUNT_ACTIVATED = "account_activated"
    INVITATION = "invitation"
    PASSWORD_CHANGED = "password_changed"
    WEEKLY_DIGEST = "weekly_digest"


class AuditEventType(str, Enum):
    """
    Security and compliance audit events.

    Groups:
    - AUTH_*: Authentication events
    - USER_*: Account changes
    - VOLUNTEER_*: Volunteer lifecycle
    - SUPERVISOR_*: Supervisor accounts
    - IMPERSONATION_*: Acting as another user
    - REIMBURSEMENT_*: Financial status changes
    """
    # Authentication
    AUTH_LOGIN_SUCCESS = "auth_login_success"
    AUTH_LOGIN_FAILED = "auth_login_failed"
    AUTH_LOGOUT = "auth_logout"

    # Account changes
    USER_PROFILE_UPDATED = "user_profile_updated"
    USER_PASSWORD_CHANGED = "user_password_changed"

    # Volunteer lifecycle
    VOLUNTEER_CREATED = "volunteer_created"
    VOLUNTEER_UPDATED = "volunteer_updated"
    VOLUNTEER_ACTIVATED = "volunteer_activated"
    VOLUNTEER_DEACTIVATED = "volunteer_deactivated"
    VOLUNTEER_INVITATION_RESENT = "volunteer_invitation_resent"

    # Supervisor accounts
    SUPERVISOR_CREATED = "supervisor_created"

    # Impersonation
    IMPERSONATION_STARTED = "impersonation_started"
    IMPERSONATION_STOPPED = "impersonation_stopped"

    # Reimbursements
    REIMBURSEMENT_STATUS_CHANGED = "reimbursement_status_changed"


DEFAULT_JOB_STATUS = JobStatus.PENDING
DEFAULT_EMAIL_STATUS = EmailStatus.PENDING
