from fastapi import APIRouter

from . import bulk_payments, drafts, health

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(drafts.router)
api_router.include_router(bulk_payments.router)
