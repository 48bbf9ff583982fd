from fastapi import APIRouter

from app.api.api_v1.endpoints import audit, auth, cases, chat, health, onboarding, profiles, tasks, users

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(onboarding.router, prefix="/onboarding", tags=["onboarding"])
api_router.include_router(cases.router, prefix="/cases", tags=["cases"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
