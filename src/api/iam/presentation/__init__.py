"""IAM presentation layer - aggregate-based organization.

Organizes presentation concerns by domain aggregate (auth, users,
applications, organizations, deletions) following vertical slicing and DDD
principles. Each aggregate package contains its own routes and models.
"""

from __future__ import annotations

from fastapi import APIRouter

from iam.presentation.applications.routes import router as applications_router
from iam.presentation.auth.routes import router as auth_router
from iam.presentation.deletions.routes import router as deletions_router
from iam.presentation.organizations.routes import router as organizations_router
from iam.presentation.users.routes import router as users_router

# Auth is enforced per-endpoint (each handler declares its own Depends):
# sign-up, login and the OAuth callbacks are public.
router = APIRouter()

router.include_router(auth_router)
router.include_router(users_router)
router.include_router(applications_router)
router.include_router(organizations_router)
router.include_router(deletions_router)

__all__ = ["router"]
