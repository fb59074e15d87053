"""API routers."""

from casa.routers.auth import router as auth_router
from casa.routers.cases import router as cases_router
from casa.routers.home import router as home_router
from casa.routers.reimbursements import router as reimbursements_router
from casa.routers.supervisors import router as supervisors_router
from casa.routers.users import router as users_router
from casa.routers.volunteers import router as volunteers_router

__all__ = [
    "auth_router",
    "cases_router",
    "home_router",
    "reimbursements_router",
    "supervisors_router",
    "users_router",
    "volunteers_router",
]
