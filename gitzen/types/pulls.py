"""Pull request-related data models."""

from dataclasses import dataclass, field
from typing import Any


def _mergeable_state(mergeable: bool | None) -> str:
    """Map the remote mergeable flag to "clean", "conflicting" or "unknown" (still computing)."""
    if mergeable is None:
        return "unknown"
    return "clean" if mergeable else "conflicting"


@dataclass
class PullRequest:
    """Pull request information."""

    number: int
    title: str
    state: str  # "open" or "closed"
    head_ref: str
    head_sha: str
    base_ref: str
    base_sha: str
    author: str
    html_url: str
    created_at: str
    updated_at: str
    body: str | None = None
    merged_at: str | None = None
    # None while the remote host is still computing mergeability
    mergeable: bool | None = None

    @property
    def merged(self) -> bool:
        return self.merged_at is not None

    @property
    def mergeable_state(self) -> str:
        return _mergeable_state(self.mergeable)


@dataclass
class MergeResult:
    """Result of merging a pull request."""

    sha: str
    merged: bool
    message: str = ""


@dataclass
class FileChange:
    """One file in a comparison between two refs."""

    filename: str
    status: str  # "added", "modified", "removed", "renamed", ...


@dataclass
class Comparison:
    """Result of comparing base...head."""

    status: str
    ahead_by: int
    behind_by: int
    files: list[FileChange] = field(default_factory=list)


@dataclass
class Comment:
    """A conversation comment on a pull request."""

    id: int
    body: str
    author: str
    avatar_url: str | None
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "body": self.body,
            "author": self.author,
            "avatarUrl": self.avatar_url,
            "createdAt": self.created_at,
        }


@dataclass
class ReviewSummary:
    """A pull request opened from a review branch."""

    number: int
    title: str
    branch: str
    state: str
    merged: bool
    created_at: str
    updated_at: str
    collection: str
    slug: str
    author: str
    preview_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "branch": self.branch,
            "state": self.state,
            "merged": self.merged,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "collection": self.collection,
            "slug": self.slug,
            "previewUrl": self.preview_url,
            "author": self.author,
        }


@dataclass
class ReviewDetail(ReviewSummary):
    """A review with the fields needed to act on it."""

    body: str | None = None
    mergeable: bool | None = None
    head_sha: str = ""
    base_sha: str = ""
    html_url: str = ""

    @property
    def mergeable_state(self) -> str:
        return _mergeable_state(self.mergeable)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "body": self.body,
                "mergeable": self.mergeable,
                "mergeableState": self.mergeable_state,
                "headSha": self.head_sha,
                "baseSha": self.base_sha,
                "htmlUrl": self.html_url,
            }
        )
        return data
