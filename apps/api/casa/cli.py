"""CLI tools for CASA administration."""

import click
from sqlalchemy.exc import SQLAlchemyError

from casa.core.config import settings
from casa.core.security import get_password_hash
from casa.db.enums import Role
from casa.db.models import Organization, User
from casa.db.session import SessionLocal
from casa.services import digest_service


@click.group()
def cli():
    """CASA CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Organization name")
def create_org(name: str):
    """
    Create a CASA organization.

    Example:
        python -m casa.cli create-org --name "Prince George CASA"
    """
    name = name.strip()
    if not name:
        raise click.ClickException("Organization name can't be blank")

    db = SessionLocal()
    try:
        org = Organization(name=name)
        db.add(org)
        db.commit()

        click.echo(f"✓ Created organization: {name}")
        click.echo(f"  ID: {org.id}")
    except SQLAlchemyError as e:
        db.rollback()
        raise click.ClickException(f"Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--org-id", required=True, type=click.UUID, help="Organization ID")
@click.option("--email", required=True, help="Admin email address")
@click.option("--display-name", required=True, help="Admin display name")
@click.option("--password", required=True, prompt=True, hide_input=True, help="Initial password")
def create_admin(org_id, email: str, display_name: str, password: str):
    """
    Create a CASA admin who can sign in with a password.

    Example:
        python -m casa.cli create-admin --org-id <uuid> --email "admin@casa.org" --display-name "Admin"
    """
    email = email.strip().lower()
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise click.ClickException(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
        )

    db = SessionLocal()
    try:
        org = db.get(Organization, org_id)
        if not org:
            raise click.ClickException(f"Organization not found: {org_id}")

        if db.query(User).filter(User.email == email).first():
            raise click.ClickException(f"User already exists: {email}")

        user = User(
            organization_id=org.id,
            role=Role.CASA_ADMIN.value,
            email=email,
            display_name=display_name.strip(),
            password_hash=get_password_hash(password),
        )
        db.add(user)
        db.commit()

        click.echo(f"✓ Created casa_admin {email} in {org.name}")
        click.echo(f"  ID: {user.id}")
    except SQLAlchemyError as e:
        db.rollback()
        raise click.ClickException(f"Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        python -m casa.cli revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            raise click.ClickException(f"User not found: {email}")

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    except SQLAlchemyError as e:
        db.rollback()
        raise click.ClickException(f"Error: {e}")
    finally:
        db.close()


@cli.command()
def schedule_digests():
    """
    Schedule the supervisor weekly digest for every organization.

    Run weekly (e.g. from cron); the worker sends the emails.

    Example:
        python -m casa.cli schedule-digests
    """
    db = SessionLocal()
    try:
        jobs = digest_service.schedule_digest_jobs(db)
        click.echo(f"✓ Scheduled {len(jobs)} supervisor digest job(s)")
    except SQLAlchemyError as e:
        db.rollback()
        raise click.ClickException(f"Error: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
