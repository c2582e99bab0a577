"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from infrastructure.database.dependencies import close_database_connections
from infrastructure.logging import configure_logging
from infrastructure.observability import DefaultStartupProbe
from infrastructure.settings import get_oidc_settings, get_settings, get_store_settings
from infrastructure.version import __version__
from tenancy.dependencies import get_retention_sweeper, get_store_drivers
from tenancy.presentation import router as tenancy_router

_probe = DefaultStartupProbe()


@asynccontextmanager
async def tenantgate_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Logging configuration
    - Retention sweeper lifecycle (archives retired migration sources)
    - Store engines and the control-plane engine (closed on shutdown)
    """
    configure_logging(debug=get_settings().debug)
    backend = get_store_settings().backend

    sweeper = get_retention_sweeper()
    await sweeper.start()
    _probe.application_started(backend=backend, version=__version__)

    try:
        yield
    finally:
        await sweeper.stop()
        await get_store_drivers().close()
        if backend == "postgres":
            await close_database_connections()
        _probe.application_stopped()


def configure_swagger_oauth2(app: FastAPI) -> None:
    """Enable Swagger UI login against the OIDC provider.

    Uses the public Swagger client with PKCE. When the OIDC settings cannot
    be loaded the docs stay usable without a login button.
    """
    try:
        settings = get_oidc_settings()
    except Exception as e:
        _probe.swagger_oauth_disabled(error=str(e))
        return

    issuer = settings.issuer_url
    scopes = {"openid": "OpenID Connect", "profile": "User profile"}

    app.swagger_ui_init_oauth = {
        "clientId": settings.swagger_client_id,
        "usePkceWithAuthorizationCodeGrant": True,
        "scopes": " ".join(scopes),
    }

    def custom_openapi() -> dict:
        if app.openapi_schema:
            return app.openapi_schema

        schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {})["OAuth2"] = {
            "type": "oauth2",
            "flows": {
                "authorizationCode": {
                    "authorizationUrl": f"{issuer}/protocol/openid-connect/auth",
                    "tokenUrl": f"{issuer}/protocol/openid-connect/token",
                    "scopes": scopes,
                }
            },
        }
        schema["security"] = [{"OAuth2": list(scopes)}]
        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


app = FastAPI(
    title="Tenant Gate API",
    description="Tenant-isolating data access layer with online tier migration",
    version=__version__,
    lifespan=tenantgate_lifespan,
)

configure_swagger_oauth2(app)

# Include Tenancy bounded context routes
app.include_router(tenancy_router)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}
