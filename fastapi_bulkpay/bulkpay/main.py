import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bulkpay.api.routes import api_router
from bulkpay.core.config import settings
from bulkpay.core.exceptions import BatchSubmittedError
from bulkpay.core.scheduler import shutdown_scheduler, start_scheduler
from bulkpay.db.session import init_db

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(name)-32s] %(levelname)-7s %(message)s",
)

app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(BatchSubmittedError)
async def _batch_submitted_handler(request: Request, exc: BatchSubmittedError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.on_event("startup")
def _startup() -> None:
    init_db()
    start_scheduler()


@app.on_event("shutdown")
def _shutdown() -> None:
    shutdown_scheduler()


@app.get("/", tags=["health"])
async def root() -> dict[str, str]:
    return {"message": f"{settings.app_name} ready"}
