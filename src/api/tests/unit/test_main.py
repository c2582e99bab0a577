"""Unit tests for main FastAPI application configuration.

Tests for Swagger UI OAuth2/OIDC integration, the health endpoint
and the application lifespan.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI


TEST_ISSUER = "https://auth.example.com/realms/test"
TEST_AUDIENCE = "tenantgate"
TEST_SWAGGER_CLIENT_ID = "test-swagger-client"


@pytest.fixture
def mock_oidc_settings() -> MagicMock:
    """Create mock OIDC settings for testing."""
    settings = MagicMock()
    settings.issuer_url = TEST_ISSUER
    settings.audience = TEST_AUDIENCE
    settings.swagger_client_id = TEST_SWAGGER_CLIENT_ID
    return settings


@pytest.fixture
def test_app() -> FastAPI:
    """Create a minimal test FastAPI app."""
    return FastAPI(
        title="Test API",
        version="1.0.0",
        description="Test application",
    )


class TestConfigureSwaggerOAuth2:
    """Tests for configure_swagger_oauth2 function."""

    def test_swagger_ui_init_oauth_configured_when_oidc_valid(
        self,
        test_app: FastAPI,
        mock_oidc_settings: MagicMock,
    ) -> None:
        """Swagger UI init oauth should be configured when OIDC settings are valid."""
        from main import configure_swagger_oauth2

        with patch("main.get_oidc_settings", return_value=mock_oidc_settings):
            configure_swagger_oauth2(test_app)

        assert test_app.swagger_ui_init_oauth is not None
        assert test_app.swagger_ui_init_oauth["clientId"] == TEST_SWAGGER_CLIENT_ID

    def test_openapi_schema_contains_oauth2_security_scheme(
        self,
        test_app: FastAPI,
        mock_oidc_settings: MagicMock,
    ) -> None:
        """OpenAPI schema should contain OAuth2 security scheme."""
        from main import configure_swagger_oauth2

        with patch("main.get_oidc_settings", return_value=mock_oidc_settings):
            configure_swagger_oauth2(test_app)

        schema = test_app.openapi()

        assert "components" in schema
        assert "securitySchemes" in schema["components"]
        assert "OAuth2" in schema["components"]["securitySchemes"]

        oauth2_scheme = schema["components"]["securitySchemes"]["OAuth2"]
        assert oauth2_scheme["type"] == "oauth2"
        assert "flows" in oauth2_scheme
        assert "authorizationCode" in oauth2_scheme["flows"]

    def test_authorization_url_matches_issuer(
        self,
        test_app: FastAPI,
        mock_oidc_settings: MagicMock,
    ) -> None:
        """Authorization URL should be constructed from issuer URL."""
        from main import configure_swagger_oauth2

        with patch("main.get_oidc_settings", return_value=mock_oidc_settings):
            configure_swagger_oauth2(test_app)

        schema = test_app.openapi()
        auth_code_flow = schema["components"]["securitySchemes"]["OAuth2"]["flows"][
            "authorizationCode"
        ]

        expected_auth_url = f"{TEST_ISSUER}/protocol/openid-connect/auth"
        expected_token_url = f"{TEST_ISSUER}/protocol/openid-connect/token"

        assert auth_code_flow["authorizationUrl"] == expected_auth_url
        assert auth_code_flow["tokenUrl"] == expected_token_url

    def test_pkce_enabled_in_swagger_config(
        self,
        test_app: FastAPI,
        mock_oidc_settings: MagicMock,
    ) -> None:
        """usePkceWithAuthorizationCodeGrant should be True."""
        from main import configure_swagger_oauth2

        with patch("main.get_oidc_settings", return_value=mock_oidc_settings):
            configure_swagger_oauth2(test_app)

        assert test_app.swagger_ui_init_oauth is not None
        assert (
            test_app.swagger_ui_init_oauth["usePkceWithAuthorizationCodeGrant"] is True
        )

    def test_swagger_not_configured_when_oidc_settings_fail(
        self,
        test_app: FastAPI,
    ) -> None:
        """Swagger OAuth2 should not be configured when OIDC settings fail."""
        from main import configure_swagger_oauth2

        with patch(
            "main.get_oidc_settings",
            side_effect=Exception("Missing client_secret"),
        ):
            configure_swagger_oauth2(test_app)

        # swagger_ui_init_oauth should remain None (not set)
        assert test_app.swagger_ui_init_oauth is None

    def test_openapi_schema_cached_after_first_call(
        self,
        test_app: FastAPI,
        mock_oidc_settings: MagicMock,
    ) -> None:
        """OpenAPI schema should be cached after first call."""
        from main import configure_swagger_oauth2

        with patch("main.get_oidc_settings", return_value=mock_oidc_settings):
            configure_swagger_oauth2(test_app)

        # First call generates the schema
        schema1 = test_app.openapi()
        # Second call should return cached schema
        schema2 = test_app.openapi()

        assert schema1 is schema2

    def test_scopes_configured_in_swagger_init(
        self,
        test_app: FastAPI,
        mock_oidc_settings: MagicMock,
    ) -> None:
        """Scopes should be configured in swagger_ui_init_oauth."""
        from main import configure_swagger_oauth2

        with patch("main.get_oidc_settings", return_value=mock_oidc_settings):
            configure_swagger_oauth2(test_app)

        assert test_app.swagger_ui_init_oauth is not None
        assert "scopes" in test_app.swagger_ui_init_oauth
        assert "openid" in test_app.swagger_ui_init_oauth["scopes"]

    def test_global_security_applied_to_schema(
        self,
        test_app: FastAPI,
        mock_oidc_settings: MagicMock,
    ) -> None:
        """Global security should be applied to OpenAPI schema."""
        from main import configure_swagger_oauth2

        with patch("main.get_oidc_settings", return_value=mock_oidc_settings):
            configure_swagger_oauth2(test_app)

        schema = test_app.openapi()

        assert "security" in schema
        assert len(schema["security"]) > 0
        assert "OAuth2" in schema["security"][0]

    def test_uses_public_swagger_client_not_audience(
        self,
        test_app: FastAPI,
        mock_oidc_settings: MagicMock,
    ) -> None:
        """Should use the public swagger_client_id, not the token audience."""
        from main import configure_swagger_oauth2

        with patch("main.get_oidc_settings", return_value=mock_oidc_settings):
            configure_swagger_oauth2(test_app)

        assert test_app.swagger_ui_init_oauth is not None
        assert test_app.swagger_ui_init_oauth["clientId"] == TEST_SWAGGER_CLIENT_ID
        assert test_app.swagger_ui_init_oauth["clientId"] != TEST_AUDIENCE


class TestHealth:
    """Tests for the health endpoint."""

    def test_health_returns_ok(self) -> None:
        from fastapi.testclient import TestClient

        from main import app

        response = TestClient(app).get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestLifespan:
    """Tests for tenantgate_lifespan."""

    def test_starts_and_stops_sweeper_and_closes_stores(self) -> None:
        from fastapi.testclient import TestClient

        from main import tenantgate_lifespan

        sweeper = MagicMock()
        sweeper.start = AsyncMock()
        sweeper.stop = AsyncMock()
        drivers = MagicMock()
        drivers.close = AsyncMock()
        store_settings = MagicMock(backend="memory")

        app = FastAPI(lifespan=tenantgate_lifespan)

        with (
            patch("main.get_retention_sweeper", return_value=sweeper),
            patch("main.get_store_drivers", return_value=drivers),
            patch("main.get_store_settings", return_value=store_settings),
            patch("main.close_database_connections", new=AsyncMock()) as close_db,
        ):
            with TestClient(app):
                sweeper.start.assert_awaited_once()
                sweeper.stop.assert_not_awaited()

        sweeper.stop.assert_awaited_once()
        drivers.close.assert_awaited_once()
        close_db.assert_not_awaited()

    def test_closes_control_engine_for_postgres_backend(self) -> None:
        from fastapi.testclient import TestClient

        from main import tenantgate_lifespan

        sweeper = MagicMock(start=AsyncMock(), stop=AsyncMock())
        drivers = MagicMock(close=AsyncMock())

        app = FastAPI(lifespan=tenantgate_lifespan)

        with (
            patch("main.get_retention_sweeper", return_value=sweeper),
            patch("main.get_store_drivers", return_value=drivers),
            patch("main.get_store_settings", return_value=MagicMock(backend="postgres")),
            patch("main.close_database_connections", new=AsyncMock()) as close_db,
        ):
            with TestClient(app):
                pass

        close_db.assert_awaited_once()
