"""Shared pytest configuration for the gitzen test suite."""

pytest_plugins = ["gitzen.testing.conftest"]
