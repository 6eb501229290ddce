from fastapi import APIRouter

from portfolio.api.routers import charge_definitions

api_router = APIRouter()

api_router.include_router(charge_definitions.router)
