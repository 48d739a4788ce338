import os

from fastapi import APIRouter, Depends

from server.dependencies.auth import verify_api_key
from server.dependencies.services import get_services
from server.models.responses import HealthResponse
from services.ServiceContainer import ServiceContainer

router = APIRouter(tags=["health"], dependencies=[Depends(verify_api_key)])


@router.get("/health")
async def health(services: ServiceContainer = Depends(get_services)) -> HealthResponse:
    vector_store = await services.vector_store.system_status()
    return HealthResponse(
        status="ok" if vector_store.get("healthy") else "degraded",
        version=os.getenv("APP_VERSION", "unknown"),
        vector_store=vector_store,
    )
