"""Branch (git refs) resource client."""

from typing import TYPE_CHECKING

from gitzen.exceptions import RemoteApiError

if TYPE_CHECKING:
    from gitzen.transport import AsyncHTTPTransport


class BranchesClient:
    """Client for branch refs and repository metadata."""

    def __init__(self, transport: "AsyncHTTPTransport") -> None:
        self.transport = transport

    async def get_default_branch(self, repo: str) -> str:
        """Return the repository's default branch name."""
        data = await self.transport.request("GET", f"/repos/{repo}")
        return data["default_branch"]

    async def get_branch_sha(self, repo: str, branch: str) -> str | None:
        """
        Return the head commit SHA of a branch.

        Returns:
            The SHA, or None when the branch does not exist
        """
        try:
            data = await self.transport.request("GET", f"/repos/{repo}/git/ref/heads/{branch}")
        except RemoteApiError as e:
            if e.is_not_found:
                return None
            raise
        return data["object"]["sha"]

    async def create_branch(self, repo: str, branch: str, sha: str) -> None:
        """Create a branch pointing at `sha`. The host answers 422 if it exists."""
        await self.transport.request(
            "POST",
            f"/repos/{repo}/git/refs",
            body={"ref": f"refs/heads/{branch}", "sha": sha},
        )

    async def delete_branch(self, repo: str, branch: str) -> None:
        """Delete a branch."""
        await self.transport.request("DELETE", f"/repos/{repo}/git/refs/heads/{branch}")
