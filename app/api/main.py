from fastapi import APIRouter

from app.api.routes import admin, assignments, auth, courses, users, videos

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(courses.router)
api_router.include_router(videos.router)
api_router.include_router(assignments.router)
api_router.include_router(admin.router)
