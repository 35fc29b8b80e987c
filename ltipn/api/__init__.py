"""Routes API / API routes."""

from fastapi import APIRouter

from ltipn.api import (
    audit,
    auth,
    bookings,
    camions,
    carriers,
    exports,
    societies,
    users,
    voyages,
)

api_router = APIRouter(prefix="/api")

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(voyages.router, prefix="/voyages", tags=["voyages"])
api_router.include_router(societies.router, prefix="/societies", tags=["societies"])
api_router.include_router(carriers.router, prefix="/carriers", tags=["carriers"])
api_router.include_router(camions.router, prefix="/camions", tags=["camions"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
api_router.include_router(exports.router, prefix="/exports", tags=["exports"])
