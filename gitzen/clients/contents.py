"""Repository contents resource client."""

import base64
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from gitzen.exceptions import RemoteApiError
from gitzen.types.repos import DirectoryItem, FileContent

if TYPE_CHECKING:
    from gitzen.transport import AsyncHTTPTransport


def _contents_path(repo: str, path: str) -> str:
    return f"/repos/{repo}/contents/{quote(path.strip('/'))}"


def decode_content(payload: str) -> str:
    """Decode the host's base64 payload, which arrives wrapped over several lines."""
    raw = base64.b64decode("".join(payload.split()))
    return raw.decode("utf-8")


def encode_content(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class ContentsClient:
    """Client for reading and writing files."""

    def __init__(self, transport: "AsyncHTTPTransport") -> None:
        """
        Initialize the contents client.

        Args:
            transport: HTTP transport for making requests
        """
        self.transport = transport

    async def get_file(self, repo: str, path: str, ref: str | None = None) -> FileContent:
        """
        Read a file, optionally pinned to a branch or commit.

        Args:
            repo: Repository in "owner/name" form
            path: File path inside the repository
            ref: Optional branch name or commit SHA

        Returns:
            FileContent with decoded UTF-8 text and blob SHA
        """
        data = await self.transport.request(
            "GET",
            _contents_path(repo, path),
            params={"ref": ref} if ref else None,
        )
        return FileContent(
            path=data.get("path", path),
            sha=data["sha"],
            content=decode_content(data.get("content") or ""),
        )

    async def find_file(
        self, repo: str, path: str, ref: str | None = None
    ) -> FileContent | None:
        """Like get_file(), but a missing file returns None instead of raising."""
        try:
            return await self.get_file(repo, path, ref)
        except RemoteApiError as e:
            if e.is_not_found:
                return None
            raise

    async def list_directory(self, repo: str, path: str) -> list[DirectoryItem]:
        """List the entries of a directory."""
        data = await self.transport.request("GET", _contents_path(repo, path))
        return [
            DirectoryItem(name=item["name"], path=item["path"], sha=item["sha"], type=item["type"])
            for item in data
        ]

    async def put_file(
        self,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: str | None = None,
        branch: str | None = None,
    ) -> str:
        """
        Create or update a file in one commit.

        Args:
            repo: Repository in "owner/name" form
            path: File path
            content: New file text
            message: Commit message
            sha: Blob SHA the update is based on (required for updates; a stale
                SHA makes the host answer 409)
            branch: Target branch (default branch when omitted)

        Returns:
            The new blob SHA
        """
        body: dict[str, Any] = {"message": message, "content": encode_content(content)}
        if sha:
            body["sha"] = sha
        if branch:
            body["branch"] = branch

        data = await self.transport.request("PUT", _contents_path(repo, path), body=body)
        return data["content"]["sha"]

    async def delete_file(
        self,
        repo: str,
        path: str,
        message: str,
        sha: str,
        branch: str | None = None,
    ) -> None:
        """Delete a file in one commit."""
        body: dict[str, Any] = {"message": message, "sha": sha}
        if branch:
            body["branch"] = branch
        await self.transport.request("DELETE", _contents_path(repo, path), body=body)
