import logging
from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from supabase import Client

from app.config import settings
from app.core.encryption import is_encryption_configured, validate_encryption_setup
from app.core.errors import api_error, http_exception_handler, unhandled_exception_handler, validation_exception_handler
from app.core.middleware import SecurityHeadersMiddleware
from app.core.rate_limit import limiter
from app.database.supabase_client import get_service_supabase, check_database_connection
from app.modules.auth import routes as auth_routes
from app.modules.credentials.tester import SharedHttpClient
from app.modules.credentials import routes as credentials_routes
from app.modules.profiles import routes as profiles_routes
from app.modules.servicenow import routes as servicenow_routes
from app.modules.timeline import routes as timeline_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

app = FastAPI(
    title=settings.app_name,
    description="Client profiles, AI transformation timelines and credential administration",
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter

app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Last added runs first: CORS, then security headers, then rate limiting
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (
    auth_routes.router,
    profiles_routes.router,
    credentials_routes.router,
    timeline_routes.router,
    timeline_routes.test_router,
    servicenow_routes.router,
):
    app.include_router(router, prefix=API_PREFIX)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.app_name} ({settings.environment})")
    if not is_encryption_configured():
        logger.warning("ENCRYPTION_KEY is not set - credential storage is disabled")
    elif not validate_encryption_setup():
        logger.error("ENCRYPTION_KEY is set but invalid - credential storage will fail")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Stopping {settings.app_name}")
    SharedHttpClient.close()


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.app_name}", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready(supabase: Client = Depends(get_service_supabase)):
    """Readiness probe: the profiles table must be reachable."""
    if not check_database_connection(supabase):
        raise api_error(503, "Database unavailable")
    return {"status": "ready"}
