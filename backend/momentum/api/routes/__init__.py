from fastapi import APIRouter

from momentum.api.routes import planning, recurring, tasks


api_router = APIRouter()
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(recurring.router, prefix="/recurring", tags=["recurring"])
api_router.include_router(planning.router, prefix="/planning", tags=["planning"])
