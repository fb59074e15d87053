"""Role-based permission decisions.

Pure functions over (actor, action, resource); no database access.

Resolution order:
1. Resource outside the actor's organization -> deny (all roles, all actions)
2. Action restricted to a target role and the target has another role -> deny
3. No rule for (role, action) -> deny
4. Any matching rule kind -> permit
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from casa.db.enums import Role


class Action(str, Enum):
    """Actions an actor can request on a resource."""
    VIEW_REIMBURSEMENTS = "view_reimbursements"
    CHANGE_REIMBURSEMENT_STATUS = "change_reimbursement_status"
    VIEW_PROFILE = "view_profile"
    EDIT_PROFILE = "edit_profile"
    LIST_VOLUNTEERS = "list_volunteers"
    CREATE_VOLUNTEER = "create_volunteer"
    EDIT_VOLUNTEER = "edit_volunteer"
    ACTIVATE_VOLUNTEER = "activate_volunteer"
    DEACTIVATE_VOLUNTEER = "deactivate_volunteer"
    IMPERSONATE = "impersonate"
    RESEND_INVITATION = "resend_invitation"
    VIEW_CASE = "view_case"
    LIST_SUPERVISORS = "list_supervisors"
    CREATE_SUPERVISOR = "create_supervisor"


class Decision(str, Enum):
    PERMIT = "permit"
    DENY = "deny"


class Rule(str, Enum):
    """How a permitted role relates to the resource."""
    ORG = "org"  # any resource in the actor's organization
    SELF = "self"  # the resource is the actor
    ASSIGNED = "assigned"  # the actor is assigned to the resource (cases)


class ResourceKind(str, Enum):
    ORGANIZATION = "organization"
    USER = "user"
    CASE = "case"
    CASE_CONTACT = "case_contact"


@dataclass(frozen=True)
class Actor:
    """The identity a request acts as."""
    user_id: UUID
    org_id: UUID
    role: Role


@dataclass(frozen=True)
class ResourceRef:
    """Persistence-free description of what an action targets."""
    kind: ResourceKind
    org_id: UUID
    id: UUID | None = None
    role: Role | None = None  # users only
    assigned_user_ids: frozenset[UUID] = field(default_factory=frozenset)  # cases only

    @classmethod
    def organization(cls, org_id: UUID) -> "ResourceRef":
        return cls(kind=ResourceKind.ORGANIZATION, org_id=org_id, id=org_id)

    @classmethod
    def user(cls, user_id: UUID, org_id: UUID, role: Role | str) -> "ResourceRef":
        return cls(kind=ResourceKind.USER, org_id=org_id, id=user_id, role=Role(role))

    @classmethod
    def case(
        cls,
        case_id: UUID,
        org_id: UUID,
        assigned_user_ids: frozenset[UUID] | set[UUID] = frozenset(),
    ) -> "ResourceRef":
        return cls(
            kind=ResourceKind.CASE,
            org_id=org_id,
            id=case_id,
            assigned_user_ids=frozenset(assigned_user_ids),
        )

    @classmethod
    def case_contact(cls, contact_id: UUID, org_id: UUID) -> "ResourceRef":
        return cls(kind=ResourceKind.CASE_CONTACT, org_id=org_id, id=contact_id)


# =============================================================================
# Policy Table
# =============================================================================

_ORG = frozenset({Rule.ORG})
_SELF = frozenset({Rule.SELF})

POLICY: dict[Action, dict[Role, frozenset[Rule]]] = {
    Action.VIEW_REIMBURSEMENTS: {Role.CASA_ADMIN: _ORG},
    Action.CHANGE_REIMBURSEMENT_STATUS: {Role.CASA_ADMIN: _ORG},
    Action.VIEW_PROFILE: {
        Role.CASA_ADMIN: _SELF,
        Role.SUPERVISOR: _SELF,
        Role.VOLUNTEER: _SELF,
    },
    Action.EDIT_PROFILE: {
        Role.CASA_ADMIN: _SELF,
        Role.SUPERVISOR: _SELF,
        Role.VOLUNTEER: _SELF,
    },
    Action.LIST_VOLUNTEERS: {Role.CASA_ADMIN: _ORG, Role.SUPERVISOR: _ORG},
    Action.CREATE_VOLUNTEER: {Role.CASA_ADMIN: _ORG, Role.SUPERVISOR: _ORG},
    Action.EDIT_VOLUNTEER: {Role.CASA_ADMIN: _ORG, Role.SUPERVISOR: _ORG},
    Action.ACTIVATE_VOLUNTEER: {Role.CASA_ADMIN: _ORG, Role.SUPERVISOR: _ORG},
    Action.DEACTIVATE_VOLUNTEER: {Role.CASA_ADMIN: _ORG, Role.SUPERVISOR: _ORG},
    Action.IMPERSONATE: {Role.CASA_ADMIN: _ORG, Role.SUPERVISOR: _ORG},
    Action.RESEND_INVITATION: {Role.CASA_ADMIN: _ORG, Role.SUPERVISOR: _ORG},
    Action.VIEW_CASE: {
        Role.CASA_ADMIN: _ORG,
        Role.SUPERVISOR: _ORG,
        Role.VOLUNTEER: frozenset({Rule.ASSIGNED}),
    },
    Action.LIST_SUPERVISORS: {Role.CASA_ADMIN: _ORG, Role.SUPERVISOR: _ORG},
    Action.CREATE_SUPERVISOR: {Role.CASA_ADMIN: _ORG},
}

# Actions whose user target must have one of these roles ("be impersonated": volunteers only)
TARGET_ROLES: dict[Action, frozenset[Role]] = {
    Action.EDIT_VOLUNTEER: frozenset({Role.VOLUNTEER}),
    Action.ACTIVATE_VOLUNTEER: frozenset({Role.VOLUNTEER}),
    Action.DEACTIVATE_VOLUNTEER: frozenset({Role.VOLUNTEER}),
    Action.IMPERSONATE: frozenset({Role.VOLUNTEER}),
    Action.RESEND_INVITATION: frozenset({Role.VOLUNTEER}),
}


# =============================================================================
# Decisions
# =============================================================================

def _rule_matches(rule: Rule, actor: Actor, resource: ResourceRef) -> bool:
    if rule is Rule.ORG:
        return True
    if rule is Rule.SELF:
        return resource.kind is ResourceKind.USER and resource.id == actor.user_id
    if rule is Rule.ASSIGNED:
        return resource.kind is ResourceKind.CASE and actor.user_id in resource.assigned_user_ids
    return False


def decide(actor: Actor, action: Action, resource: ResourceRef) -> Decision:
    """Return permit/deny for an actor performing an action on a resource."""
    if resource.org_id != actor.org_id:
        return Decision.DENY

    allowed_targets = TARGET_ROLES.get(action)
    if allowed_targets is not None:
        if resource.kind is not ResourceKind.USER or resource.role not in allowed_targets:
            return Decision.DENY

    rules = POLICY.get(action, {}).get(actor.role)
    if not rules:
        return Decision.DENY

    if any(_rule_matches(rule, actor, resource) for rule in rules):
        return Decision.PERMIT
    return Decision.DENY


def can(actor: Actor, action: Action, resource: ResourceRef) -> bool:
    """Check if actor may perform action on resource."""
    return decide(actor, action, resource) is Decision.PERMIT
