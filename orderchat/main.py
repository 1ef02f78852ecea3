"""
OrderChat - FastAPI application

Exposes the conversation engine to channel adapters (WhatsApp, web chat).
The adapters own delivery to the customer; this service only turns one
inbound message into one reply.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import structlog

from orderchat.config import settings
from orderchat.database import SessionLocal, engine
from orderchat.errors import AppError
from orderchat.log import configure_logging
from orderchat.api import conversations

configure_logging()

logger = structlog.get_logger()

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Starting OrderChat API",
        version=VERSION,
        default_provider=settings.default_llm_provider,
        max_conversation_seconds=settings.max_conversation_seconds,
    )
    yield
    await engine.dispose()
    logger.info("Shutting down OrderChat API")


app = FastAPI(
    title="OrderChat",
    description="Conversational ordering engine for restaurant chat channels",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Errors that escape a route keep their status code and error code"""
    logger.warning(
        "Request failed",
        path=request.url.path,
        error=exc.message,
        error_code=exc.code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


@app.get("/health")
async def health():
    """Liveness probe"""
    return {"status": "healthy", "service": "orderchat", "version": VERSION}


@app.get("/health/ready")
async def ready():
    """Readiness: the database must answer; the sweep broker is reported but optional"""
    checks = {}

    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"failed: {e}"

    try:
        from orderchat.jobs.celery_app import celery_app
        celery_app.control.ping(timeout=1)
        checks["sweep_broker"] = "ok"
    except Exception as e:
        checks["sweep_broker"] = f"failed: {e}"

    return {
        "status": "ready" if checks["database"] == "ok" else "not_ready",
        "checks": checks,
    }


app.include_router(
    conversations.router,
    prefix="/tenants/{tenant_id}/conversations",
    tags=["Conversations"],
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "orderchat.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
