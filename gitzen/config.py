"""Application configuration loaded from the environment."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from gitzen.exceptions import ConfigurationError

REQUIRED_VARIABLES = (
    "GITHUB_APP_CLIENT_ID",
    "GITHUB_APP_CLIENT_SECRET",
    "ENCRYPTION_KEY",
    "API_TOKEN_SECRET",
)

DEFAULT_SESSION_TTL = 30 * 24 * 60 * 60
DEFAULT_INSTALL_URL = "https://github.com/apps/gitzen-cms/installations/new"


@dataclass
class AppConfig:
    """
    Server-side settings.

    `encryption_key` protects remote-host tokens at rest and
    `api_token_secret` signs API tokens. They may be the same value; keys
    are derived per purpose.
    """

    client_id: str
    client_secret: str
    encryption_key: str
    api_token_secret: str
    api_base_url: str = "https://api.github.com"
    oauth_base_url: str = "https://github.com"
    app_install_url: str = DEFAULT_INSTALL_URL
    session_ttl_seconds: int = DEFAULT_SESSION_TTL
    secure_cookies: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """
        Create a configuration from environment variables.

        Environment variables:
            GITHUB_APP_CLIENT_ID: OAuth client id (required)
            GITHUB_APP_CLIENT_SECRET: OAuth client secret (required)
            ENCRYPTION_KEY: Secret for encrypting stored tokens (required)
            API_TOKEN_SECRET: Secret for signing API tokens (required)
            GITHUB_API_URL: REST API base URL (optional)
            GITHUB_OAUTH_URL: OAuth base URL (optional)
            GITHUB_APP_INSTALL_URL: Where users install the App (optional)
            SESSION_TTL_SECONDS: Session lifetime (optional, default: 30 days)
            GITZEN_SECURE_COOKIES: "false" to drop the Secure cookie flag (optional)
            GITZEN_LOG_LEVEL: Log level name (optional, default: INFO)

        Raises:
            ConfigurationError: If required variables are missing or a value is invalid
        """
        env = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_VARIABLES if not env.get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        ttl_raw = env.get("SESSION_TTL_SECONDS", str(DEFAULT_SESSION_TTL))
        try:
            session_ttl = int(ttl_raw)
        except ValueError:
            raise ConfigurationError(f"Invalid SESSION_TTL_SECONDS: {ttl_raw}") from None
        if session_ttl <= 0:
            raise ConfigurationError(f"Invalid SESSION_TTL_SECONDS: {ttl_raw}")

        log_level = env.get("GITZEN_LOG_LEVEL", "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"Invalid GITZEN_LOG_LEVEL: {log_level}")

        return cls(
            client_id=env["GITHUB_APP_CLIENT_ID"],
            client_secret=env["GITHUB_APP_CLIENT_SECRET"],
            encryption_key=env["ENCRYPTION_KEY"],
            api_token_secret=env["API_TOKEN_SECRET"],
            api_base_url=env.get("GITHUB_API_URL", cls.api_base_url),
            oauth_base_url=env.get("GITHUB_OAUTH_URL", cls.oauth_base_url),
            app_install_url=env.get("GITHUB_APP_INSTALL_URL", DEFAULT_INSTALL_URL),
            session_ttl_seconds=session_ttl,
            secure_cookies=env.get("GITZEN_SECURE_COOKIES", "true").lower() != "false",
            log_level=log_level,
        )
