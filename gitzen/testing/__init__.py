"""gitzen testing utilities.

Provides an in-memory remote host, an in-memory KVStore and fixtures for
testing code built on gitzen.
"""

from gitzen.testing.fake_host import FakeRemoteHost, FakeRepo, RecordedCall, blob_sha
from gitzen.testing.fixtures import (
    TEST_ACCESS_TOKEN,
    TEST_LOGIN,
    TEST_REPO,
    TEST_USER_ID,
    create_seeded_host,
    create_session_auth,
    create_token_auth,
    markdown_document,
    sample_cms_config,
)
from gitzen.testing.memory import MemoryKVStore

__all__ = [
    # Fakes
    "FakeRemoteHost",
    "FakeRepo",
    "RecordedCall",
    "MemoryKVStore",
    "blob_sha",
    # Helper functions
    "create_seeded_host",
    "create_session_auth",
    "create_token_auth",
    "markdown_document",
    "sample_cms_config",
    # Constants
    "TEST_ACCESS_TOKEN",
    "TEST_LOGIN",
    "TEST_REPO",
    "TEST_USER_ID",
]
