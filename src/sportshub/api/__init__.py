"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Admin protection is applied at the include_router level using
FastAPI's dependencies parameter, so no admin handler can forget the
role check. Student routes declare get_current_user per handler because
they need the identity value itself (whose roster, whose profile).
The banner and /health live outside /api.
"""

from fastapi import APIRouter, Depends

from sportshub.api.admin import login_router as admin_login_router
from sportshub.api.admin import router as admin_router
from sportshub.api.auth import router as auth_router
from sportshub.api.categories import router as categories_router
from sportshub.api.events import admin_router as admin_events_router
from sportshub.api.events import router as events_router
from sportshub.api.health import router as health_router
from sportshub.api.notifications import router as notifications_router
from sportshub.api.profile import router as profile_router
from sportshub.api.settings import router as settings_router
from sportshub.auth.dependencies import require_admin

__all__ = ["api_router", "health_router"]

# Every admin router requires an admin/super_admin role claim
_admin = [Depends(require_admin)]

api_router = APIRouter(prefix="/api")

# Open + student routes
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(events_router, tags=["events", "teams"])
api_router.include_router(profile_router, tags=["profile", "chat"])
api_router.include_router(admin_login_router, tags=["admin"])

# Admin routes
api_router.include_router(admin_router, tags=["admin"], dependencies=_admin)
api_router.include_router(admin_events_router, tags=["admin", "events"], dependencies=_admin)
api_router.include_router(categories_router, tags=["admin", "categories"], dependencies=_admin)
api_router.include_router(notifications_router, tags=["admin", "notifications"], dependencies=_admin)
api_router.include_router(settings_router, tags=["admin", "settings"], dependencies=_admin)
