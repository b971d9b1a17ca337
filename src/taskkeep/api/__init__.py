"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in each router
without relying on every handler to remember it. Health and auth
routers are open (no session required).
"""

from fastapi import APIRouter, Depends

from taskkeep.api.auth import router as auth_router
from taskkeep.api.health import router as health_router
from taskkeep.api.tasks import router as tasks_router
from taskkeep.api.users import router as users_router
from taskkeep.auth.dependencies import get_current_user

# All protected routers require a signed-in user
_auth = [Depends(get_current_user)]

api_router = APIRouter()

# Open routes: no session required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: require a live session bound to an existing user
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
api_router.include_router(users_router, tags=["users"], dependencies=_auth)
