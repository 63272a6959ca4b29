"""
Pytest plugin for gitzen testing fixtures.

This module re-exports all fixtures from fixtures.py so they can be
discovered by pytest. To use them, add this to your conftest.py:

    pytest_plugins = ["gitzen.testing.conftest"]

Or import the fixtures directly:

    from gitzen.testing.fixtures import fake_host, session_auth
"""

# Re-export all fixtures for pytest auto-discovery
from gitzen.testing.fixtures import (
    app_config,
    data_store,
    fake_host,
    identity,
    remote_client,
    session_auth,
    session_store,
    token_auth,
)

__all__ = [
    "app_config",
    "data_store",
    "session_store",
    "identity",
    "fake_host",
    "remote_client",
    "session_auth",
    "token_auth",
]
