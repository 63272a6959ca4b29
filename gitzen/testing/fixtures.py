"""
Pytest fixtures for gitzen testing.

Provides an in-memory remote host, in-memory storage and ready-made auth
contexts for testing code built on gitzen.
"""

import json
from collections.abc import Generator
from typing import Any

import pytest

from gitzen.client import RemoteRepoClient
from gitzen.config import AppConfig
from gitzen.identity import IdentityStore
from gitzen.permissions import WILDCARD_REPO, Permission
from gitzen.testing.fake_host import FakeRemoteHost
from gitzen.testing.memory import MemoryKVStore
from gitzen.types.records import API_TOKEN, SESSION, AuthContext, TokenScope

TEST_USER_ID = "1001"
TEST_LOGIN = "alice"
TEST_ACCESS_TOKEN = "gho_aliceAccessToken0001"
TEST_REPO = "alice/site"


# ============================================================================
# Helper Functions
# ============================================================================


def sample_cms_config(pages_project: str | None = "alice-site") -> dict[str, Any]:
    """
    Build a cms.config.json document with a `posts` and a `pages` collection.

    `posts` defaults to review branches; `pages` commits directly and is
    locked to that workflow.
    """
    config: dict[str, Any] = {
        "name": "Alice's site",
        "collections": {
            "posts": {
                "label": "Posts",
                "directory": "content/posts",
                "fields": [
                    {"name": "title", "type": "string", "label": "Title", "required": True},
                    {"name": "tags", "type": "string[]", "label": "Tags"},
                    {"name": "draft", "type": "boolean", "label": "Draft"},
                ],
                "workflow": {"default": "pr", "locked": False},
            },
            "pages": {
                "label": "Pages",
                "directory": "content/pages",
                "fields": [{"name": "title", "type": "string", "label": "Title"}],
                "workflow": {"default": "direct", "locked": True},
            },
        },
    }
    if pages_project:
        config["preview"] = {"pagesProject": pages_project}
    return config


def markdown_document(body: str = "Hello world.", **frontmatter: Any) -> str:
    """Render a markdown file with simple scalar frontmatter."""
    lines = ["---"]
    for key, value in frontmatter.items():
        lines.append(f"{key}: {json.dumps(value)}")
    lines.append("---")
    return "\n".join(lines) + f"\n\n{body}\n"


def create_session_auth(
    user_id: str = TEST_USER_ID,
    username: str = TEST_LOGIN,
    github_token: str = TEST_ACCESS_TOKEN,
) -> AuthContext:
    """Create an AuthContext as resolved from a browser session."""
    return AuthContext(
        user_id=user_id,
        github_username=username,
        github_token=github_token,
        auth_method=SESSION,
    )


def create_token_auth(
    repos: list[str] | None = None,
    permissions: list[str] | None = None,
    user_id: str = TEST_USER_ID,
    username: str = TEST_LOGIN,
    github_token: str = TEST_ACCESS_TOKEN,
) -> AuthContext:
    """
    Create an AuthContext as resolved from a scoped API token.

    Example:
        ```python
        auth = create_token_auth(repos=["alice/site"], permissions=["content:read"])
        require_repo_access(auth, "alice/site")
        ```
    """
    return AuthContext(
        user_id=user_id,
        github_username=username,
        github_token=github_token,
        auth_method=API_TOKEN,
        token_scope=TokenScope(
            repos=tuple(repos if repos is not None else [WILDCARD_REPO]),
            permissions=tuple(
                permissions if permissions is not None else [p.value for p in Permission]
            ),
        ),
    )


def create_seeded_host() -> FakeRemoteHost:
    """
    Create a FakeRemoteHost with one user and one configured repository.

    The repository holds cms.config.json and a single published post,
    ``content/posts/hello.md``.
    """
    host = FakeRemoteHost()
    host.add_user(TEST_ACCESS_TOKEN, user_id=TEST_USER_ID, login=TEST_LOGIN)
    host.add_repo(
        TEST_REPO,
        files={
            "cms.config.json": json.dumps(sample_cms_config()),
            "content/posts/hello.md": markdown_document(
                "Hello world.", title="Hello", tags=["intro"]
            ),
            "README.md": "# Site\n",
        },
    )
    return host


# ============================================================================
# Storage and Configuration Fixtures
# ============================================================================


@pytest.fixture
def data_store() -> MemoryKVStore:
    """Provide an empty store for users, tokens and connected repos."""
    return MemoryKVStore()


@pytest.fixture
def session_store() -> MemoryKVStore:
    """Provide an empty store for sessions."""
    return MemoryKVStore()


@pytest.fixture
def app_config() -> AppConfig:
    """Provide an AppConfig with fixed test secrets and insecure cookies."""
    return AppConfig(
        client_id="Iv1.testclient",
        client_secret="test-client-secret",
        encryption_key="test-encryption-key",
        api_token_secret="test-api-token-secret",
        secure_cookies=False,
    )


@pytest.fixture
def identity(data_store: MemoryKVStore, session_store: MemoryKVStore, app_config: AppConfig) -> IdentityStore:
    """Provide an IdentityStore over the in-memory stores."""
    return IdentityStore(data_store, session_store, app_config.encryption_key)


# ============================================================================
# Remote Host Fixtures
# ============================================================================


@pytest.fixture
def fake_host() -> FakeRemoteHost:
    """
    Provide a FakeRemoteHost seeded with alice and alice/site.

    Example:
        ```python
        async def test_reads_config(remote_client, fake_host):
            file = await remote_client.contents.get_file("alice/site", "cms.config.json")
            assert fake_host.called("GET", "/contents/cms.config.json") == 1
        ```
    """
    return create_seeded_host()


@pytest.fixture
def remote_client(fake_host: FakeRemoteHost) -> Generator[RemoteRepoClient, None, None]:
    """Provide a RemoteRepoClient for alice, served by fake_host."""
    client = RemoteRepoClient(TEST_ACCESS_TOKEN, http_transport=fake_host.transport())
    yield client
    fake_host.reset_calls()


# ============================================================================
# Auth Context Fixtures
# ============================================================================


@pytest.fixture
def session_auth() -> AuthContext:
    """Provide a browser-session AuthContext for alice."""
    return create_session_auth()


@pytest.fixture
def token_auth() -> AuthContext:
    """Provide an API-token AuthContext scoped to alice/site with every permission."""
    return create_token_auth(repos=[TEST_REPO])
