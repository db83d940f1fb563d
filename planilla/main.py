"""Planilla - payroll administration API over the database's stored routines"""
import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from planilla.config import settings
from planilla.database import Gateway, get_gateway
from planilla.error_handlers import add_exception_handlers
from planilla.routers import (
    auth,
    collaborators,
    departments,
    fortnights,
    reports,
)
from planilla.security import require_token

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if settings.uses_default_secret:
        logger.warning("JWT_SECRET is not set; tokens are signed with the insecure built-in secret")
    # Tests install their own gateway before startup
    owns_gateway = getattr(app.state, "gateway", None) is None
    if owns_gateway:
        app.state.gateway = Gateway.from_settings(settings)
        logger.info(
            "database pool ready (%s, size=%s)",
            "production" if settings.is_production else "development",
            settings.db_pool_size,
        )
    yield
    if owns_gateway:
        await app.state.gateway.dispose()
        app.state.gateway = None


app = FastAPI(
    title=settings.app_name,
    description="Departments, collaborators, salaries, fortnights and payroll reports",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
add_exception_handlers(app)

app.include_router(departments.router)
app.include_router(reports.router, dependencies=[Depends(require_token)])
app.include_router(fortnights.router, dependencies=[Depends(require_token)])
app.include_router(collaborators.router)
app.include_router(auth.router)


@app.get("/", response_class=PlainTextResponse)
async def home(gateway: Gateway = Depends(get_gateway)):
    try:
        now = await gateway.server_time()
    except Exception:
        logger.exception("health check could not reach the database")
        return PlainTextResponse("Error connecting to the database", status_code=500)
    return f"Payroll API is running. Current time from DB: {now}"
