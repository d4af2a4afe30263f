"""
election_backend/routes/__init__.py
All API routers, mounted under /api by main.py
"""
from fastapi import APIRouter

from election_backend.routes import (
    admin, auth, candidate, manifestos, nominations, public, reviewers, superadmin, supporters
)

api_router = APIRouter(prefix="/api")

api_router.include_router(auth.router)
api_router.include_router(nominations.router)
api_router.include_router(candidate.router)
api_router.include_router(supporters.router)
api_router.include_router(manifestos.router)
api_router.include_router(reviewers.router)
api_router.include_router(admin.router)
api_router.include_router(superadmin.router)
api_router.include_router(public.router)
