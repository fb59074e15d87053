"""User and volunteer schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from casa.db.enums import Role


class UserRead(BaseModel):
    """User as shown on edit views."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    role: Role
    email: str
    display_name: str
    phone_number: str | None = None
    active: bool
    supervisor_id: UUID | None = None
    invitation_created_at: datetime | None = None


class ProfileUpdate(BaseModel):
    """
    Own-profile form.

    `active` is accepted so that form posts carrying it do not fail,
    but it is always stripped before persisting.
    """
    display_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    active: bool | None = None


class VolunteerUpdate(ProfileUpdate):
    """Volunteer edit form used by admins and supervisors."""
    supervisor_id: UUID | None = None


class VolunteerCreate(BaseModel):
    display_name: str = ""
    email: str = ""
    phone_number: str | None = None
    supervisor_id: UUID | None = None


class SupervisorCreate(BaseModel):
    display_name: str = ""
    email: str = ""
    phone_number: str | None = None


class PasswordUpdate(BaseModel):
    """Validated in the service so failures re-render instead of 422."""
    current_password: str = ""
    password: str = ""
    password_confirmation: str = ""
