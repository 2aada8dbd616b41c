from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html

from famifirst.core.config import settings
from famifirst.core.errors import DomainError, domain_error_handler
from famifirst.core.logging import configure_logging, get_logger
from famifirst.routers import admin_recurrence, auth, families, health, invitations
from famifirst.services.notifications import CeleryNotifier

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    app.state.notifier = CeleryNotifier(settings.celery_broker_url, settings.notification_timeout_seconds)
    logger.info("FamiFirst API starting (env=%s)", settings.app_env)
    yield


app = FastAPI(
    title="FamiFirst Household API",
    version="1.0.0",
    description="API for families, memberships, invitations, and recurring household tasks.",
    # The API is proxied under a path prefix at the edge. Swagger needs a fixed openapi URL
    # that includes this prefix; we provide a custom /docs route below.
    docs_url=None,
    root_path=settings.root_path,
    lifespan=lifespan,
)

# Custom Swagger UI that points at the externally reachable OpenAPI URL.
@app.get("/docs", include_in_schema=False)
def swagger_ui():
    prefix = (settings.root_path or "").rstrip("/")
    openapi_url = f"{prefix}{app.openapi_url}"
    return get_swagger_ui_html(openapi_url=openapi_url, title=f"{app.title} - Docs")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(DomainError, domain_error_handler)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(families.router)
app.include_router(invitations.router)
app.include_router(admin_recurrence.router)
