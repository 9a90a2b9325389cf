"""WOMS FastAPI application."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from woms.api.admin import auth_router
from woms.api.admin import router as admin_router
from woms.api.health import router as health_router
from woms.api.quotes import router as quotes_router
from woms.api.work_orders import router as work_orders_router
from woms.api.work_orders import webhook_router
from woms.config import settings
from woms.errors import NotFound, OutOfScope, WomsError

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="WOMS - Work Order Management Service",
    description="Multi-tenant quote lifecycle and work order management",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WomsError)
async def woms_error_handler(request: Request, exc: WomsError) -> JSONResponse:
    """Render typed errors; out-of-scope resources may be disguised as missing."""
    if isinstance(exc, OutOfScope) and settings.forbidden_as_not_found:
        exc = NotFound()
    if exc.http_status >= 500:
        logger.error("Unhandled %s on %s %s", exc.code, request.method, request.url.path)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


app.include_router(health_router, tags=["Health"])
app.include_router(auth_router, prefix="/v1/auth", tags=["Auth"])
app.include_router(admin_router, prefix="/v1/admin", tags=["Admin"])
app.include_router(quotes_router, prefix="/v1", tags=["Quotes"])
app.include_router(work_orders_router, prefix="/v1", tags=["Work Orders"])
app.include_router(webhook_router, prefix="/v1/webhooks", tags=["Webhooks"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"service": "WOMS", "version": "0.1.0", "docs": "/docs"}
