"""Home: landing target for redirects; delivers the pending flash notice."""

from fastapi import APIRouter, Request, Response

from casa.core.responses import pop_flash

router = APIRouter()


@router.get("/")
def home(request: Request, response: Response):
    return {"status": "ok", "notice": pop_flash(request, response)}
