"""Review branch naming and preview URLs."""

import re
from dataclasses import dataclass

BRANCH_PREFIX = "cms/"

_BRANCH_RE = re.compile(r"^cms/([^/]+)/(.+)$", re.DOTALL)


@dataclass(frozen=True)
class BranchRef:
    """The collection and slug a review branch belongs to."""

    collection: str
    slug: str


def format_branch(collection: str, slug: str) -> str:
    """Return the review branch for a content item: cms/{collection}/{slug}."""
    return f"{BRANCH_PREFIX}{collection}/{slug}"


def parse_branch(branch: str) -> BranchRef | None:
    """
    Split a review branch into collection and slug.

    Only the first "/" after the collection is a separator, so slugs may
    themselves contain "/". Returns None for anything that is not a review
    branch.
    """
    match = _BRANCH_RE.match(branch)
    if not match:
        return None
    return BranchRef(collection=match.group(1), slug=match.group(2))


def preview_url(branch: str, project: str) -> str:
    """Deployment preview URL for a branch on the configured pages project."""
    alias = branch.replace("/", "-").lower()
    return f"https://{alias}.{project}.pages.dev"
