"""Pull requests resource client."""

from typing import TYPE_CHECKING, Any

from gitzen.types.pulls import Comment, Comparison, FileChange, MergeResult, PullRequest

if TYPE_CHECKING:
    from gitzen.transport import AsyncHTTPTransport


def _parse_pull_request(data: dict[str, Any]) -> PullRequest:
    """Parse pull request data from API response."""
    return PullRequest(
        number=data["number"],
        title=data["title"],
        state=data["state"],
        head_ref=data["head"]["ref"],
        head_sha=data["head"]["sha"],
        base_ref=data["base"]["ref"],
        base_sha=data["base"]["sha"],
        author=(data.get("user") or {}).get("login", ""),
        html_url=data.get("html_url", ""),
        created_at=data.get("created_at", ""),
        updated_at=data.get("updated_at", ""),
        body=data.get("body"),
        merged_at=data.get("merged_at"),
        mergeable=data.get("mergeable"),
    )


def _parse_comment(data: dict[str, Any]) -> Comment:
    user = data.get("user") or {}
    return Comment(
        id=data["id"],
        body=data["body"],
        author=user.get("login", ""),
        avatar_url=user.get("avatar_url"),
        created_at=data.get("created_at", ""),
    )


class PullsClient:
    """Client for pull request operations."""

    def __init__(self, transport: "AsyncHTTPTransport") -> None:
        """
        Initialize the pulls client.

        Args:
            transport: HTTP transport for making requests
        """
        self.transport = transport

    async def create(
        self,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str = "",
    ) -> PullRequest:
        """
        Open a pull request.

        Args:
            repo: Repository in "owner/name" form
            title: Pull request title
            head: Branch containing changes
            base: Branch to merge into
            body: Optional description

        Returns:
            The created PullRequest
        """
        data = await self.transport.request(
            "POST",
            f"/repos/{repo}/pulls",
            body={"title": title, "head": head, "base": base, "body": body},
        )
        return _parse_pull_request(data)

    async def get(self, repo: str, number: int) -> PullRequest:
        """
        Get pull request details.

        `mergeable` is None while the host is still computing it; poll again
        rather than treating it as a conflict.
        """
        data = await self.transport.request("GET", f"/repos/{repo}/pulls/{number}")
        return _parse_pull_request(data)

    async def merge(
        self,
        repo: str,
        number: int,
        commit_title: str,
        commit_message: str,
        method: str = "squash",
    ) -> MergeResult:
        """
        Merge a pull request.

        Args:
            repo: Repository in "owner/name" form
            number: Pull request number
            commit_title: Title of the merge commit
            commit_message: Body of the merge commit
            method: "squash", "merge" or "rebase" (default: "squash")

        Returns:
            MergeResult with the merge commit SHA
        """
        data = await self.transport.request(
            "PUT",
            f"/repos/{repo}/pulls/{number}/merge",
            body={
                "merge_method": method,
                "commit_title": commit_title,
                "commit_message": commit_message,
            },
        )
        return MergeResult(
            sha=data["sha"],
            merged=data.get("merged", True),
            message=data.get("message", ""),
        )

    async def update_branch(self, repo: str, number: int) -> None:
        """Merge the base branch into the pull request's head branch."""
        await self.transport.request("PUT", f"/repos/{repo}/pulls/{number}/update-branch")

    async def close(self, repo: str, number: int) -> None:
        """Close a pull request without merging."""
        await self.transport.request(
            "PATCH", f"/repos/{repo}/pulls/{number}", body={"state": "closed"}
        )

    async def compare(self, repo: str, base: str, head: str) -> Comparison:
        """Compare two refs, returning per-file status."""
        data = await self.transport.request("GET", f"/repos/{repo}/compare/{base}...{head}")
        return Comparison(
            status=data.get("status", ""),
            ahead_by=data.get("ahead_by", 0),
            behind_by=data.get("behind_by", 0),
            files=[
                FileChange(filename=f["filename"], status=f["status"])
                for f in data.get("files") or []
            ],
        )

    async def list_comments(self, repo: str, number: int) -> list[Comment]:
        """List conversation comments on a pull request."""
        data = await self.transport.request(
            "GET", f"/repos/{repo}/issues/{number}/comments", params={"per_page": 100}
        )
        return [_parse_comment(c) for c in data]

    async def create_comment(self, repo: str, number: int, body: str) -> Comment:
        """Add a conversation comment to a pull request."""
        data = await self.transport.request(
            "POST", f"/repos/{repo}/issues/{number}/comments", body={"body": body}
        )
        return _parse_comment(data)

    async def list(self, repo: str, state: str = "open") -> list[PullRequest]:
        """List pull requests (first 100)."""
        data = await self.transport.request(
            "GET",
            f"/repos/{repo}/pulls",
            params={"state": state, "per_page": 100},
        )
        return [_parse_pull_request(pr) for pr in data]
