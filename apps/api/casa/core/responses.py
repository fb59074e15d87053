"""Render service results as HTTP responses (redirect + flash notice, or form errors)."""

from urllib.parse import quote, unquote

from fastapi import Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from casa.core.config import settings
from casa.core.deps import COOKIE_NAME
from casa.core.errors import AuthorizationDenied
from casa.schemas.auth import SessionIdentity
from casa.services.results import ActionResult, Outcome
from casa.services.session_service import create_token_for_identity

FLASH_COOKIE = "casa_flash"
FLASH_MAX_AGE = 60


def redirect_status(request: Request) -> int:
    """302 for GET navigation, 303 so browsers follow PATCH/POST redirects with GET."""
    return 302 if request.method == "GET" else 303


def set_flash(response: Response, notice: str) -> None:
    response.set_cookie(
        key=FLASH_COOKIE,
        value=quote(notice),
        max_age=FLASH_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )


def pop_flash(request: Request, response: Response) -> str | None:
    """Read the pending notice and clear it."""
    raw = request.cookies.get(FLASH_COOKIE)
    if raw is None:
        return None
    response.delete_cookie(FLASH_COOKIE, path="/")
    return unquote(raw)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )


def issue_session(db: Session, response: Response, identity: SessionIdentity) -> None:
    set_session_cookie(response, create_token_for_identity(db, identity))


def redirect_with_notice(request: Request, url: str, notice: str | None) -> RedirectResponse:
    response = RedirectResponse(url=url, status_code=redirect_status(request))
    if notice:
        set_flash(response, notice)
    return response


def render_result(request: Request, db: Session, result: ActionResult) -> Response:
    """
    Turn an ActionResult into a response.

    - ok / denied: redirect with the notice as a flash cookie
    - invalid: 200 with field errors so the form can be re-rendered
    """
    if result.outcome is Outcome.INVALID:
        return JSONResponse({"status": Outcome.INVALID.value, "errors": result.errors})

    response = redirect_with_notice(request, result.redirect_to or "/", result.notice)
    if result.identity is not None:
        issue_session(db, response, result.identity)
    return response


async def authorization_denied_handler(request: Request, exc: AuthorizationDenied) -> Response:
    return redirect_with_notice(request, exc.redirect_to, exc.message)
