"""
Main FastAPI application for the vertical data dashboards.
Serves health, vertical catalog/records, entitlements, unlock, credits, admin and metrics.
"""
import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import configure_logging
from app.api.routes import health, verticals, rpc, credits, admin
from app.utils.metrics import router as metrics_router


configure_logging()
logger = logging.getLogger("access")

app = FastAPI(
    title="Vertical Intelligence API",
    description="Credit-gated data verticals: records, entitlements and unlocks",
    version="1.0.0",
)

# CORS
origins = settings.cors_origins_list
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def access_log(request: Request, call_next):
    request_id = request.headers.get(settings.request_id_header) or uuid4().hex
    start = time.time()
    response = await call_next(request)
    response.headers[settings.request_id_header] = request_id
    logger.info(
        "http_request",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "latency_ms": round((time.time() - start) * 1000, 1),
        },
    )
    return response


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(verticals.router)
app.include_router(rpc.router)
app.include_router(credits.router)
app.include_router(admin.router)
app.include_router(metrics_router)
