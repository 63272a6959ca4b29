"""HTTP API for the CMS, built with FastAPI."""

from gitzen.api.app import app_from_env, create_app

__all__ = ["create_app", "app_from_env"]
