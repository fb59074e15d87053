"""Centralized query scopes for collection endpoints.

Scopes are SQL filters on organization identity (plus assignment for
volunteers), never per-record `can` checks.
"""

from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from sqlalchemy import ColumnElement, and_, false, select
from sqlalchemy.orm import Query

from casa.core.permissions import POLICY, Action, Actor, Rule
from casa.db.enums import Role
from casa.db.models import Case, CaseAssignment, CaseContact, User


@dataclass(frozen=True)
class ScopePolicy:
    """Organization filter + optional assignment filter for a collection."""

    org_filter: Callable[[UUID], ColumnElement[bool]]
    assigned_filter: Callable[[UUID], ColumnElement[bool]] | None = None


def _cases_in_org(org_id: UUID):
    return select(Case.id).where(Case.organization_id == org_id)


def _cases_assigned_to(user_id: UUID):
    return select(CaseAssignment.case_id).where(
        CaseAssignment.volunteer_id == user_id,
        CaseAssignment.active.is_(True),
    )


SCOPES: dict[Action, ScopePolicy] = {
    Action.VIEW_REIMBURSEMENTS: ScopePolicy(
        org_filter=lambda org_id: CaseContact.case_id.in_(_cases_in_org(org_id)),
    ),
    Action.CHANGE_REIMBURSEMENT_STATUS: ScopePolicy(
        org_filter=lambda org_id: CaseContact.case_id.in_(_cases_in_org(org_id)),
    ),
    Action.VIEW_CASE: ScopePolicy(
        org_filter=lambda org_id: Case.organization_id == org_id,
        assigned_filter=lambda user_id: Case.id.in_(_cases_assigned_to(user_id)),
    ),
    Action.LIST_VOLUNTEERS: ScopePolicy(
        org_filter=lambda org_id: and_(
            User.organization_id == org_id,
            User.role == Role.VOLUNTEER.value,
        ),
    ),
    Action.LIST_SUPERVISORS: ScopePolicy(
        org_filter=lambda org_id: and_(
            User.organization_id == org_id,
            User.role == Role.SUPERVISOR.value,
        ),
    ),
}


def get_policy(action: Action) -> ScopePolicy:
    """Fetch a scope policy or raise KeyError."""
    return SCOPES[action]


def apply_scope(actor: Actor, action: Action, query: Query) -> Query:
    """
    Restrict a query to the records the actor may see for an action.

    Records outside the actor's organization are always excluded.
    An actor without any rule for the action gets an empty result.
    """
    policy = get_policy(action)
    rules = POLICY.get(action, {}).get(actor.role, frozenset())

    if Rule.ORG in rules:
        return query.filter(policy.org_filter(actor.org_id))
    if Rule.ASSIGNED in rules and policy.assigned_filter is not None:
        return query.filter(
            policy.org_filter(actor.org_id),
            policy.assigned_filter(actor.user_id),
        )
    return query.filter(false())
