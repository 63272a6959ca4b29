"""
Content review workflow.

A content item moves through these states:

    CLEAN      the default branch holds the latest content
    DRAFTING   edits exist only in the editor (never observed here)
    BRANCHED   cms/{collection}/{slug} exists with a commit
    IN_REVIEW  a pull request is open from that branch
    MERGED     the pull request was squash-merged (terminal)
    CLOSED     the pull request was closed unmerged (terminal)

Saves either commit straight to the default branch or to the item's
review branch, which gets a pull request opened on its first save. Nothing
is retried: update-branch and force-rebase are separate operations the
caller picks between.
"""

import asyncio
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from gitzen.branch import format_branch, parse_branch, preview_url
from gitzen.client import RemoteRepoClient
from gitzen.content import (
    EXTENSIONS,
    ContentService,
    is_content_file,
    resolve_path,
    strip_extension,
    validate_item,
)
from gitzen.diff import diff_frontmatter, word_diff
from gitzen.exceptions import (
    ConflictError,
    GitzenError,
    NotFoundError,
    RemoteApiError,
    ServerError,
    ValidationError,
)
from gitzen.frontmatter import parse_frontmatter
from gitzen.logging import get_logger, log_audit
from gitzen.types.content import CmsConfig, ContentDiff
from gitzen.types.pulls import Comment, PullRequest, ReviewDetail, ReviewSummary

logger = get_logger("workflow")

MAX_COMMENT_LENGTH = 65_536

_BRANCH_NAME_RE = re.compile(r"^[\w][\w./-]{0,254}$")


class ReviewState(str, Enum):
    CLEAN = "clean"
    DRAFTING = "drafting"
    BRANCHED = "branched"
    IN_REVIEW = "in_review"
    MERGED = "merged"
    CLOSED = "closed"


TRANSITIONS: dict[ReviewState, frozenset[ReviewState]] = {
    ReviewState.CLEAN: frozenset(
        {ReviewState.DRAFTING, ReviewState.CLEAN, ReviewState.BRANCHED}
    ),
    ReviewState.DRAFTING: frozenset(
        {ReviewState.CLEAN, ReviewState.BRANCHED, ReviewState.IN_REVIEW, ReviewState.CLOSED}
    ),
    ReviewState.BRANCHED: frozenset(
        {ReviewState.DRAFTING, ReviewState.BRANCHED, ReviewState.IN_REVIEW, ReviewState.CLOSED}
    ),
    ReviewState.IN_REVIEW: frozenset(
        {ReviewState.DRAFTING, ReviewState.IN_REVIEW, ReviewState.MERGED, ReviewState.CLOSED}
    ),
    ReviewState.MERGED: frozenset(),
    ReviewState.CLOSED: frozenset(),
}


def can_transition(source: ReviewState, target: ReviewState) -> bool:
    return target in TRANSITIONS[source]


@dataclass
class WorkflowResult:
    """Outcome of a workflow operation."""

    state: ReviewState
    path: str | None = None
    sha: str | None = None
    branch: str | None = None
    pr_number: int | None = None
    html_url: str | None = None
    preview_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"state": self.state.value}
        for key, value in (
            ("path", self.path),
            ("sha", self.sha),
            ("branch", self.branch),
            ("prNumber", self.pr_number),
            ("htmlUrl", self.html_url),
            ("previewUrl", self.preview_url),
        ):
            if value is not None:
                data[key] = value
        return data


@dataclass
class UpdateResult:
    """Outcome of bringing a review branch up to date with the default branch."""

    ok: bool
    conflict: bool = False
    state: ReviewState = ReviewState.IN_REVIEW


def _preview(config: CmsConfig | None, branch: str) -> str | None:
    if config is None or not config.pages_project:
        return None
    return preview_url(branch, config.pages_project)


class BranchWorkflowManager:
    """
    Drives content items through direct saves and review branches.

    Example:
        ```python
        async with RemoteRepoClient(auth.github_token) as client:
            workflow = BranchWorkflowManager(client, ContentService(client))
            result = await workflow.save_to_branch("owner/site", "posts", "hello", text)
            await workflow.merge("owner/site", result.pr_number)
        ```
    """

    def __init__(self, client: RemoteRepoClient, content: ContentService) -> None:
        self.client = client
        self.content = content

    async def current_state(self, repo: str, collection: str, slug: str) -> ReviewState:
        """Observe an item's state from its review branch and pull requests."""
        branch = format_branch(collection, slug)
        if await self.client.branches.get_branch_sha(repo, branch) is None:
            return ReviewState.CLEAN
        if await self._find_open_pr(repo, branch) is None:
            return ReviewState.BRANCHED
        return ReviewState.IN_REVIEW

    async def save_direct(
        self, repo: str, collection: str, slug: str, content: str, sha: str | None = None
    ) -> WorkflowResult:
        """
        Commit an item straight to the default branch.

        Args:
            repo: Repository in "owner/name" form
            collection: Collection name
            slug: Item slug
            content: Full file text (frontmatter and body)
            sha: Blob SHA the edit is based on; omit to create

        Raises:
            ConflictError: If the file changed since `sha` was read
        """
        validate_item(collection, slug)
        path = resolve_path(await self.content.collection(repo, collection), slug)
        message = f"{'Update' if sha else 'Create'} {collection}/{slug}"

        new_sha = await self._commit(repo, path, content, message, sha, None)
        log_audit("content.saved", repo=repo, collection=collection, slug=slug, mode="direct")
        return WorkflowResult(state=ReviewState.CLEAN, path=path, sha=new_sha)

    async def save_to_branch(
        self,
        repo: str,
        collection: str,
        slug: str,
        content: str,
        sha: str | None = None,
        title: str | None = None,
    ) -> WorkflowResult:
        """
        Commit an item to its review branch and make sure a review is open.

        The branch is created from the default branch head when missing. When
        `sha` is omitted, the file's SHA on the branch is looked up so edits
        update rather than collide. If opening the pull request fails, the
        commit stands and the item stays BRANCHED.

        Raises:
            ConflictError: If the file changed since `sha` was read, or a
                concurrent save created the branch first
        """
        validate_item(collection, slug)
        config = await self.content.load_config(repo)
        path = resolve_path(self.content.lookup(config, collection), slug)
        branch = format_branch(collection, slug)

        default_branch = await self.client.branches.get_default_branch(repo)
        if await self.client.branches.get_branch_sha(repo, branch) is None:
            await self._create_branch_from(repo, branch, default_branch)

        if not sha:
            existing = await self.client.contents.find_file(repo, path, branch)
            sha = existing.sha if existing else None

        message = f"{'Update' if sha else 'Create'} {collection}/{slug}"
        new_sha = await self._commit(repo, path, content, message, sha, branch)
        log_audit(
            "content.saved",
            repo=repo,
            collection=collection,
            slug=slug,
            mode="branch",
            branch=branch,
        )

        result = WorkflowResult(
            state=ReviewState.BRANCHED,
            path=path,
            sha=new_sha,
            branch=branch,
            preview_url=_preview(config, branch),
        )

        try:
            pr = await self._find_open_pr(repo, branch)
            if pr is None:
                pr = await self.client.pulls.create(
                    repo,
                    title=title or slug,
                    head=branch,
                    base=default_branch,
                    body=f"Content update for `{collection}/{slug}`.",
                )
        except (GitzenError, httpx.HTTPError) as e:
            logger.warning("Could not open a review for %s in %s: %s", branch, repo, e)
            return result

        result.state = ReviewState.IN_REVIEW
        result.pr_number = pr.number
        result.html_url = pr.html_url
        return result

    async def open_review(
        self, repo: str, branch: str, title: str, body: str = ""
    ) -> WorkflowResult:
        """
        Open a pull request from an existing branch into the default branch.

        Raises:
            ValidationError: If the branch name or title is invalid
        """
        if not branch or not _BRANCH_NAME_RE.match(branch):
            raise ValidationError("INVALID_BRANCH", "Invalid branch name")
        if not title or not title.strip():
            raise ValidationError("MISSING_TITLE", "PR title is required")

        default_branch, config = await asyncio.gather(
            self.client.branches.get_default_branch(repo),
            self.content.find_config(repo),
        )
        pr = await self.client.pulls.create(
            repo, title=title, head=branch, base=default_branch, body=body
        )
        return WorkflowResult(
            state=ReviewState.IN_REVIEW,
            branch=branch,
            pr_number=pr.number,
            html_url=pr.html_url,
            preview_url=_preview(config, branch),
        )

    async def update_branch(self, repo: str, number: int) -> UpdateResult:
        """
        Merge the default branch into the review branch.

        A conflict is reported in the result rather than raised; the review
        stays open.
        """
        try:
            await self.client.pulls.update_branch(repo, number)
        except RemoteApiError as e:
            if e.status in (409, 422):
                return UpdateResult(ok=False, conflict=True)
            raise
        return UpdateResult(ok=True)

    async def force_rebase(self, repo: str, number: int) -> WorkflowResult:
        """
        Recreate a review branch from the default branch head.

        The item's content is read from the review branch, the branch is
        deleted and recreated from the current default head, and the same
        content is committed again. Used when update_branch reports a
        conflict.

        Raises:
            ValidationError: If the pull request is not from a review branch
            NotFoundError: If the item's collection or file cannot be found
        """
        pr = await self.client.pulls.get(repo, number)
        branch = pr.head_ref
        ref = parse_branch(branch)
        if ref is None:
            raise ValidationError("NOT_REVIEW_BRANCH", "Not a CMS branch")

        collection = await self.content.collection(repo, ref.collection)
        file = None
        for extension in EXTENSIONS:
            path = resolve_path(collection, ref.slug, extension)
            file = await self.client.contents.find_file(repo, path, branch)
            if file is not None:
                break
        if file is None:
            raise NotFoundError("ITEM_NOT_FOUND", "Item not found on review branch")

        default_branch = await self.client.branches.get_default_branch(repo)
        head_sha = await self.client.branches.get_branch_sha(repo, default_branch)
        if head_sha is None:
            raise ServerError("DEFAULT_BRANCH_MISSING", "Could not find default branch")

        await self.client.branches.delete_branch(repo, branch)
        await self.client.branches.create_branch(repo, branch, head_sha)

        existing = await self.client.contents.find_file(repo, file.path, branch)
        new_sha = await self._commit(
            repo,
            file.path,
            file.content,
            f"Rebase {ref.collection}/{ref.slug}",
            existing.sha if existing else None,
            branch,
        )
        log_audit("review.rebased", repo=repo, number=number, branch=branch)
        return WorkflowResult(
            state=ReviewState.IN_REVIEW,
            path=file.path,
            sha=new_sha,
            branch=branch,
            pr_number=number,
        )

    async def merge(self, repo: str, number: int) -> WorkflowResult:
        """
        Squash-merge a review, then delete its branch.

        Failing to delete the branch does not fail the merge.

        Raises:
            ConflictError: If the host refuses the merge because of conflicts
        """
        pr = await self.client.pulls.get(repo, number)
        try:
            merged = await self.client.pulls.merge(
                repo,
                number,
                commit_title=pr.title,
                commit_message=f"Merge CMS content: {pr.title}",
            )
        except RemoteApiError as e:
            if e.status in (405, 409):
                raise ConflictError("MERGE_CONFLICT", "Pull request has conflicts") from None
            raise

        await self._delete_branch_quietly(repo, pr.head_ref)
        log_audit("review.merged", repo=repo, number=number, branch=pr.head_ref)
        return WorkflowResult(
            state=ReviewState.MERGED, sha=merged.sha, branch=pr.head_ref, pr_number=number
        )

    async def close(self, repo: str, number: int) -> WorkflowResult:
        """Close a review without merging and delete its branch."""
        pr = await self.client.pulls.get(repo, number)
        await self.client.pulls.close(repo, number)
        await self._delete_branch_quietly(repo, pr.head_ref)
        log_audit("review.closed", repo=repo, number=number, branch=pr.head_ref)
        return WorkflowResult(state=ReviewState.CLOSED, branch=pr.head_ref, pr_number=number)

    async def list_reviews(self, repo: str) -> list[ReviewSummary]:
        """Open pull requests from review branches."""
        pulls, config = await asyncio.gather(
            self.client.pulls.list(repo, "open"),
            self.content.find_config(repo),
        )
        reviews = []
        for pr in pulls:
            ref = parse_branch(pr.head_ref)
            if ref is None:
                continue
            reviews.append(
                ReviewSummary(
                    number=pr.number,
                    title=pr.title,
                    branch=pr.head_ref,
                    state=pr.state,
                    merged=pr.merged,
                    created_at=pr.created_at,
                    updated_at=pr.updated_at,
                    collection=ref.collection,
                    slug=ref.slug,
                    author=pr.author,
                    preview_url=_preview(config, pr.head_ref),
                )
            )
        return reviews

    async def get_review(self, repo: str, number: int) -> ReviewDetail:
        """One pull request with its mergeability and preview URL."""
        pr, config = await asyncio.gather(
            self.client.pulls.get(repo, number),
            self.content.find_config(repo),
        )
        ref = parse_branch(pr.head_ref)
        return ReviewDetail(
            number=pr.number,
            title=pr.title,
            branch=pr.head_ref,
            state=pr.state,
            merged=pr.merged,
            created_at=pr.created_at,
            updated_at=pr.updated_at,
            collection=ref.collection if ref else "",
            slug=ref.slug if ref else "",
            author=pr.author,
            preview_url=_preview(config, pr.head_ref),
            body=pr.body,
            mergeable=pr.mergeable,
            head_sha=pr.head_sha,
            base_sha=pr.base_sha,
            html_url=pr.html_url,
        )

    async def diff(self, repo: str, number: int) -> list[ContentDiff]:
        """
        Structured diff of every markdown file a review changes.

        Both sides of every file are fetched concurrently. A side that does
        not exist (new or deleted file) is empty. Bodies are compared word by
        word.
        """
        pr = await self.client.pulls.get(repo, number)
        comparison = await self.client.pulls.compare(repo, pr.base_ref, pr.head_ref)
        files = [f for f in comparison.files if is_content_file(f.filename)]
        return list(
            await asyncio.gather(
                *(self._diff_file(repo, pr, f.filename, f.status) for f in files)
            )
        )

    async def _diff_file(
        self, repo: str, pr: PullRequest, filename: str, status: str
    ) -> ContentDiff:
        collection, slug = "", strip_extension(filename)
        parts = slug.split("/")
        if len(parts) >= 2:
            ref = parse_branch(pr.head_ref)
            if ref is not None:
                collection, slug = ref.collection, ref.slug
            else:
                collection, slug = parts[-2], parts[-1]

        (old_fm, old_body), (new_fm, new_body) = await asyncio.gather(
            self._read_side(repo, filename, pr.base_ref, skip=status == "added"),
            self._read_side(repo, filename, pr.head_ref, skip=status == "removed"),
        )

        if status == "added":
            change = "added"
        elif status == "removed":
            change = "deleted"
        else:
            change = "modified"

        return ContentDiff(
            collection=collection,
            slug=slug,
            type=change,
            fields=diff_frontmatter(old_fm, new_fm),
            old_body=old_body,
            new_body=new_body,
            segments=word_diff(old_body, new_body),
        )

    async def _read_side(
        self, repo: str, path: str, ref: str, skip: bool
    ) -> tuple[dict[str, Any], str]:
        if skip:
            return {}, ""
        file = await self.client.contents.find_file(repo, path, ref)
        if file is None:
            return {}, ""
        return parse_frontmatter(file.content)

    async def list_comments(self, repo: str, number: int) -> list[Comment]:
        return await self.client.pulls.list_comments(repo, number)

    async def add_comment(self, repo: str, number: int, body: str) -> Comment:
        """
        Raises:
            ValidationError: If the body is blank or longer than 65536 characters
        """
        if not body or not body.strip():
            raise ValidationError("MISSING_BODY", "Comment body is required")
        if len(body) > MAX_COMMENT_LENGTH:
            raise ValidationError("BODY_TOO_LONG", "Comment body too long (max 65536 chars)")
        return await self.client.pulls.create_comment(repo, number, body)

    async def _find_open_pr(self, repo: str, branch: str) -> PullRequest | None:
        pulls = await self.client.pulls.list(repo, "open")
        return next((pr for pr in pulls if pr.head_ref == branch), None)

    async def _create_branch_from(self, repo: str, branch: str, source: str) -> None:
        head_sha = await self.client.branches.get_branch_sha(repo, source)
        if head_sha is None:
            raise ServerError("DEFAULT_BRANCH_MISSING", "Could not find default branch HEAD")
        try:
            await self.client.branches.create_branch(repo, branch, head_sha)
        except RemoteApiError as e:
            if e.status == 422:
                raise ConflictError("BRANCH_EXISTS", f"Branch already exists: {branch}") from None
            raise

    async def _commit(
        self,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: str | None,
        branch: str | None,
    ) -> str:
        try:
            return await self.client.contents.put_file(
                repo, path, content, message, sha=sha, branch=branch
            )
        except RemoteApiError as e:
            if e.status == 409:
                raise ConflictError(
                    "FILE_CONFLICT", "Conflict: file was modified. Refresh and try again."
                ) from None
            raise

    async def _delete_branch_quietly(self, repo: str, branch: str) -> None:
        try:
            await self.client.branches.delete_branch(repo, branch)
        except RemoteApiError as e:
            logger.info("Branch %s in %s was not deleted: %s", branch, repo, e)
