"""
Application factory.

Storage, the OAuth client and the outgoing HTTP transport are injected so
the same app runs against production backends or in-memory fakes.
"""

import logging
import uuid

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gitzen.api.deps import Services
from gitzen.api.routes import auth, content, pulls, repos, tokens
from gitzen.auth import AuthResolver
from gitzen.config import AppConfig
from gitzen.exceptions import GitzenError, RemoteApiError
from gitzen.identity import IdentityStore
from gitzen.logging import configure_logging, get_logger
from gitzen.oauth import GitHubOAuth
from gitzen.repos import RepoRegistry
from gitzen.store import KVStore
from gitzen.tokens import ApiTokenService

logger = get_logger("api")

REQUEST_ID_HEADER = "X-Request-Id"


def create_app(
    config: AppConfig,
    sessions: KVStore,
    data: KVStore,
    http_transport: httpx.AsyncBaseTransport | None = None,
    oauth: GitHubOAuth | None = None,
) -> FastAPI:
    """
    Build the CMS API.

    Args:
        config: Application configuration
        sessions: Store for browser sessions
        data: Store for users, API tokens and connected repos
        http_transport: Optional httpx transport for every remote-host call
        oauth: OAuth client; built from `config` when omitted

    Example:
        ```python
        app = create_app(AppConfig.from_env(), sessions, data)
        ```
    """
    if oauth is None:
        oauth = GitHubOAuth(
            config.client_id,
            config.client_secret,
            base_url=config.oauth_base_url,
            api_base_url=config.api_base_url,
            http_transport=http_transport,
        )
    identity = IdentityStore(data, sessions, config.encryption_key)

    app = FastAPI(title="gitzen")
    app.state.services = Services(
        config=config,
        identity=identity,
        oauth=oauth,
        resolver=AuthResolver(identity, config, oauth),
        tokens=ApiTokenService(identity, config.api_token_secret),
        repos=RepoRegistry(data, config.app_install_url),
        http_transport=http_transport,
    )

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request.state.request_id = uuid.uuid4().hex
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response

    @app.exception_handler(GitzenError)
    async def handle_gitzen_error(request: Request, exc: GitzenError) -> JSONResponse:
        if isinstance(exc, RemoteApiError):
            logger.warning(
                "Remote host error %s on %s %s", exc.status, request.method, request.url.path
            )
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        logger.exception("Unhandled error in %s %s [%s]", request.method, request.url.path, request_id)
        return JSONResponse(
            {"error": "Internal server error", "requestId": request_id}, status_code=500
        )

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(auth.router)
    app.include_router(tokens.router)
    app.include_router(repos.github_router)
    app.include_router(repos.router)
    app.include_router(content.router)
    app.include_router(pulls.router)
    return app


def app_from_env(
    sessions: KVStore,
    data: KVStore,
    environ: dict[str, str] | None = None,
    log_handler: logging.Handler | None = None,
) -> FastAPI:
    """
    Build the API from environment variables and configure logging at
    GITZEN_LOG_LEVEL.

    Raises:
        ConfigurationError: If the environment is incomplete
    """
    config = AppConfig.from_env(environ)
    configure_logging(level=logging.getLevelName(config.log_level), handler=log_handler)
    logger.info("Starting gitzen API against %s", config.api_base_url)
    return create_app(config, sessions, data)
