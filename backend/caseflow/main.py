import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text

from caseflow.config import settings
from caseflow.database import engine
from caseflow.errors import WorkflowError
from caseflow.middleware.logging_config import configure_logging

configure_logging(settings.log_level, json_output=settings.log_json)

from caseflow.api.auth import router as auth_router  # noqa: E402
from caseflow.api.cases import router as cases_router  # noqa: E402
from caseflow.api.documents import router as documents_router  # noqa: E402
from caseflow.api.security import router as security_router  # noqa: E402
from caseflow.api.audit import router as audit_router  # noqa: E402
from caseflow.api.notifications import router as notifications_router  # noqa: E402

logger = logging.getLogger("caseflow")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await engine.dispose()


app = FastAPI(
    title="Caseflow",
    description="Authorization and case-workflow engine for immigration case management",
    version="0.1.0",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────────────────────
origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

# ── Request context middleware (request ID + timing) ─────────────────────────
from caseflow.middleware.request_context import RequestContextMiddleware  # noqa: E402

app.add_middleware(RequestContextMiddleware)

# ── Prometheus metrics middleware ────────────────────────────────────────────
from caseflow.middleware.metrics import PrometheusMiddleware  # noqa: E402

app.add_middleware(PrometheusMiddleware)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    """NotFound→404, Forbidden→403, InvalidTransition/Validation→400, Conflict→409."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return detailed error info in development mode so 500s are debuggable."""
    tb = traceback.format_exc()
    logger.error(
        "Unhandled %s on %s %s: %s\n%s",
        type(exc).__name__, request.method, request.url.path, exc, tb,
    )
    if settings.environment == "development":
        return JSONResponse(
            status_code=500,
            content={"detail": f"{type(exc).__name__}: {exc}", "traceback": tb.splitlines()[-5:]},
        )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# Register API routers
app.include_router(auth_router)
app.include_router(cases_router)
app.include_router(documents_router)
app.include_router(security_router)
app.include_router(audit_router)
app.include_router(notifications_router)


@app.get("/api/health")
async def health_check():
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        database = {"status": "connected"}
    except Exception as exc:
        database = {"status": "disconnected", "error": str(exc)}

    status = "healthy" if database["status"] == "connected" else "degraded"
    return {"status": status, "version": app.version, "components": {"database": database}}


@app.get("/metrics", include_in_schema=False)
async def prometheus_metrics():
    """Prometheus text exposition of every registered collector."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
