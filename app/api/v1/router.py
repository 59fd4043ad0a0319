from fastapi import APIRouter

from app.api.v1.endpoints import users, friends, groups, listings, bookings

api_router = APIRouter()

# Include routers
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(friends.router, prefix="/friends", tags=["friends"])
api_router.include_router(groups.router, prefix="/groups", tags=["groups"])
api_router.include_router(listings.router, prefix="/listings", tags=["listings"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
