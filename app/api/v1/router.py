# app/api/v1/router.py
from fastapi import APIRouter

from app.api.v1.endpoints import (
    admin_users,
    assistant,
    clients,
    cloud,
    contracts,
    lines,
    reports,
    requests,
    services,
    stats,
    templates,
    tv,
    users,
)

api_v1_router = APIRouter()
api_v1_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_v1_router.include_router(services.router, prefix="/services", tags=["services"])
api_v1_router.include_router(lines.router, prefix="/lines", tags=["lines"])
api_v1_router.include_router(templates.router, prefix="/templates", tags=["templates"])
api_v1_router.include_router(contracts.router, prefix="/contracts", tags=["contracts"])
api_v1_router.include_router(tv.router, prefix="/tv", tags=["tv"])
api_v1_router.include_router(cloud.router, prefix="/cloud", tags=["cloud"])
api_v1_router.include_router(stats.router, prefix="/stats", tags=["stats"])
api_v1_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_v1_router.include_router(assistant.router, prefix="/assistant", tags=["assistant"])
api_v1_router.include_router(admin_users.router, prefix="/admin/users", tags=["admin"])
api_v1_router.include_router(users.router, prefix="/users", tags=["users"])
api_v1_router.include_router(requests.router, prefix="/requests", tags=["requests"])
