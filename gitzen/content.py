"""
Repository configuration and content reads.

Each repository describes its collections in cms.config.json at the root
of the default branch. A content item is a markdown file
``{directory}/{slug}.md`` (or ``.mdx``) with YAML frontmatter.
"""

import asyncio
import json
import re
from typing import Any

from gitzen.branch import format_branch
from gitzen.client import RemoteRepoClient
from gitzen.exceptions import GitzenError, NotFoundError, RemoteApiError, ValidationError
from gitzen.frontmatter import parse_frontmatter
from gitzen.logging import get_logger, log_audit
from gitzen.types.content import CmsConfig, CollectionConfig, ContentItem
from gitzen.types.repos import DirectoryItem

logger = get_logger("content")

CONFIG_PATH = "cms.config.json"
EXTENSIONS = (".md", ".mdx")

DIRECT = "direct"
BRANCH = "branch"

_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")
_EXTENSION_RE = re.compile(r"\.mdx?$")


def is_valid_slug(slug: str) -> bool:
    return 0 < len(slug) <= 200 and bool(_NAME_RE.match(slug))


def is_valid_collection(name: str) -> bool:
    return 0 < len(name) <= 100 and bool(_NAME_RE.match(name))


def validate_item(collection: str, slug: str | None = None) -> None:
    """
    Raises:
        ValidationError: If the collection name or slug is malformed
    """
    if not is_valid_collection(collection):
        raise ValidationError("INVALID_COLLECTION", "Invalid collection name")
    if slug is not None and not is_valid_slug(slug):
        raise ValidationError("INVALID_SLUG", "Invalid slug")


def strip_extension(name: str) -> str:
    return _EXTENSION_RE.sub("", name)


def is_content_file(name: str) -> bool:
    return name.endswith(EXTENSIONS)


def resolve_path(collection: CollectionConfig, slug: str, extension: str = ".md") -> str:
    return f"{collection.directory}/{slug}{extension}"


def resolve_mode(collection: CollectionConfig, requested: str | None) -> str:
    """
    Decide whether a save commits directly or goes through a review branch.

    A locked workflow always uses the collection default; otherwise an
    explicit request wins.
    """
    default = BRANCH if collection.workflow.default == "pr" else DIRECT
    if collection.workflow.locked or requested is None:
        return default
    if requested not in (DIRECT, BRANCH):
        raise ValidationError("INVALID_MODE", f"Invalid save mode: {requested}")
    return requested


class ContentService:
    """Reads configuration and content items through a RemoteRepoClient."""

    def __init__(self, client: RemoteRepoClient) -> None:
        self.client = client

    async def load_raw_config(self, repo: str) -> dict[str, Any]:
        """
        Fetch cms.config.json as a plain mapping.

        Raises:
            NotFoundError: If the file does not exist
            ValidationError: If the file is not a JSON object
        """
        try:
            file = await self.client.contents.get_file(repo, CONFIG_PATH)
        except RemoteApiError as e:
            if e.is_not_found:
                raise NotFoundError("CONFIG_NOT_FOUND", "Failed to fetch config") from None
            raise
        try:
            data = json.loads(file.content)
        except ValueError:
            raise ValidationError("INVALID_CONFIG", "cms.config.json is not valid JSON") from None
        if not isinstance(data, dict):
            raise ValidationError("INVALID_CONFIG", "cms.config.json must be an object")
        return data

    async def load_config(self, repo: str) -> CmsConfig:
        """Fetch and parse the repository's cms.config.json."""
        return CmsConfig.from_dict(await self.load_raw_config(repo))

    async def find_config(self, repo: str) -> CmsConfig | None:
        """Like load_config(), but any failure yields None."""
        try:
            return await self.load_config(repo)
        except GitzenError as e:
            logger.debug("No usable config for %s: %s", repo, e)
            return None

    @staticmethod
    def lookup(config: CmsConfig, name: str) -> CollectionConfig:
        collection = config.collections.get(name)
        if collection is None:
            raise NotFoundError("COLLECTION_NOT_FOUND", "Collection not found")
        return collection

    async def collection(self, repo: str, name: str) -> CollectionConfig:
        """Validate a collection name and return its configuration."""
        validate_item(name)
        return self.lookup(await self.load_config(repo), name)

    async def list_items(self, repo: str, collection: str) -> list[ContentItem]:
        """
        List the markdown files of a collection with their frontmatter.

        A missing directory is an empty collection. Files are read
        concurrently; one that cannot be read is listed with empty
        frontmatter.
        """
        config = await self.collection(repo, collection)
        try:
            entries = await self.client.contents.list_directory(repo, config.directory)
        except RemoteApiError as e:
            if e.is_not_found:
                return []
            raise

        files = [e for e in entries if e.type == "file" and is_content_file(e.name)]
        return list(await asyncio.gather(*(self._read_summary(repo, f) for f in files)))

    async def _read_summary(self, repo: str, entry: DirectoryItem) -> ContentItem:
        slug = strip_extension(entry.name)
        try:
            file = await self.client.contents.get_file(repo, entry.path)
            frontmatter, _ = parse_frontmatter(file.content)
        except (RemoteApiError, ValidationError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s in %s: %s", entry.path, repo, e)
            return ContentItem(slug=slug, path=entry.path, sha=entry.sha, frontmatter={})
        return ContentItem(slug=slug, path=entry.path, sha=file.sha, frontmatter=frontmatter)

    async def get_item(
        self, repo: str, collection: str, slug: str, branch: str | None = None
    ) -> ContentItem:
        """
        Read one content item.

        Without an explicit branch, the item's review branch is used when it
        exists (along with its open pull request, if any). If the file is not
        on that branch, the default branch is read instead.

        Raises:
            NotFoundError: If no .md or .mdx file exists for the slug
        """
        validate_item(collection, slug)
        config = await self.collection(repo, collection)

        active = branch
        pr_number = None
        if active is None:
            review_branch = format_branch(collection, slug)
            if await self.client.branches.get_branch_sha(repo, review_branch):
                active = review_branch
                pr_number = await self._open_pr_number(repo, review_branch)

        refs: list[str | None] = [active]
        if active is not None:
            refs.append(None)

        for ref in refs:
            for extension in EXTENSIONS:
                path = resolve_path(config, slug, extension)
                file = await self.client.contents.find_file(repo, path, ref)
                if file is None:
                    continue
                frontmatter, body = parse_frontmatter(file.content)
                return ContentItem(
                    slug=slug,
                    path=path,
                    sha=file.sha,
                    frontmatter=frontmatter,
                    body=body,
                    branch=active,
                    pr_number=pr_number,
                )

        raise NotFoundError("ITEM_NOT_FOUND", "Item not found")

    async def _open_pr_number(self, repo: str, branch: str) -> int | None:
        try:
            pulls = await self.client.pulls.list(repo, "open")
        except RemoteApiError as e:
            logger.warning("Could not list pull requests for %s: %s", repo, e)
            return None
        return next((pr.number for pr in pulls if pr.head_ref == branch), None)

    async def delete_item(self, repo: str, collection: str, slug: str, sha: str) -> str:
        """
        Delete an item from the default branch.

        Returns:
            The deleted file's path

        Raises:
            ValidationError: If no sha was given
            NotFoundError: If no .md or .mdx file exists for the slug
        """
        validate_item(collection, slug)
        if not sha:
            raise ValidationError("MISSING_SHA", "sha is required")
        config = await self.collection(repo, collection)

        for extension in EXTENSIONS:
            path = resolve_path(config, slug, extension)
            try:
                await self.client.contents.delete_file(
                    repo, path, f"Delete {collection}/{slug}", sha
                )
            except RemoteApiError as e:
                if e.is_not_found:
                    continue
                raise
            log_audit("content.deleted", repo=repo, collection=collection, slug=slug)
            return path

        raise NotFoundError("ITEM_NOT_FOUND", "Item not found")
