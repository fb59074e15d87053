"""Outcome of a user-initiated operation, rendered by the HTTP layer."""

from dataclasses import dataclass, field
from enum import Enum

from casa.core.errors import NOT_AUTHORIZED_NOTICE
from casa.schemas.auth import SessionIdentity

HOME_PATH = "/"


class Outcome(str, Enum):
    OK = "ok"
    DENIED = "denied"
    INVALID = "invalid"


@dataclass(frozen=True)
class ActionResult:
    """
    Result of an operation.

    - OK / DENIED carry a redirect target and an optional notice
    - INVALID carries field-level errors; nothing was persisted
    - identity is set when the session cookie must be (re)issued
    """

    outcome: Outcome
    redirect_to: str | None = None
    notice: str | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)
    identity: SessionIdentity | None = None

    @classmethod
    def ok(
        cls,
        redirect_to: str,
        notice: str | None = None,
        identity: SessionIdentity | None = None,
    ) -> "ActionResult":
        return cls(Outcome.OK, redirect_to=redirect_to, notice=notice, identity=identity)

    @classmethod
    def denied(
        cls, notice: str = NOT_AUTHORIZED_NOTICE, redirect_to: str = HOME_PATH
    ) -> "ActionResult":
        return cls(Outcome.DENIED, redirect_to=redirect_to, notice=notice)

    @classmethod
    def invalid(cls, errors: dict[str, list[str]]) -> "ActionResult":
        return cls(Outcome.INVALID, errors=errors)

    @property
    def is_ok(self) -> bool:
        return self.outcome is Outcome.OK


def volunteer_edit_path(volunteer_id) -> str:
    return f"/volunteers/{volunteer_id}/edit"


def case_edit_path(case_id) -> str:
    return f"/cases/{case_id}/edit"


PROFILE_EDIT_PATH = "/users/edit"
