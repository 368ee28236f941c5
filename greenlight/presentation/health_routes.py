from typing import Final

from fastapi import APIRouter
from pydantic import BaseModel

from ..config import settings

health_router: Final = APIRouter(prefix="/v1", tags=["health"])


class SystemInfo(BaseModel):
    environment: str
    version: str


class HealthResponse(BaseModel):
    status: str
    system_info: SystemInfo


@health_router.get("/healthcheck", response_model=HealthResponse)
def api_healthcheck() -> HealthResponse:
    return HealthResponse(
        status="available",
        system_info=SystemInfo(environment=settings.env, version=settings.version),
    )
