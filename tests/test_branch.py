"""
Tests for review branch naming and preview URLs.

Feature: gitzen-workflow
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from gitzen.branch import BranchRef, format_branch, parse_branch, preview_url

name_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("Ll", "Lu", "Nd"), whitelist_characters="-_."),
    min_size=1,
    max_size=40,
)
slug_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("Ll", "Lu", "Nd"), whitelist_characters="-_./"),
    min_size=1,
    max_size=60,
)


def test_format_branch() -> None:
    assert format_branch("blog", "my-post") == "cms/blog/my-post"
    assert format_branch("notes", "hello-world") == "cms/notes/hello-world"


@given(collection=name_strategy, slug=slug_strategy)
@settings(max_examples=100)
def test_property_parse_inverts_format(collection: str, slug: str) -> None:
    """
    Property: parse_branch(format_branch(c, s)) == (c, s) for any
    collection without "/" and any non-empty slug.
    """
    assert parse_branch(format_branch(collection, slug)) == BranchRef(collection, slug)


def test_slug_keeps_extra_slashes() -> None:
    assert parse_branch("cms/blog/sub/path") == BranchRef(collection="blog", slug="sub/path")


@pytest.mark.parametrize(
    "branch",
    ["main", "feature/something", "cms/", "cms/blog", "cms/blog/", "xcms/blog/post"],
)
def test_non_review_branches_parse_to_none(branch: str) -> None:
    assert parse_branch(branch) is None


def test_preview_url_replaces_slashes() -> None:
    assert (
        preview_url("cms/blog/my-post", "alice-blog")
        == "https://cms-blog-my-post.alice-blog.pages.dev"
    )


def test_preview_url_lowercases_branch() -> None:
    assert (
        preview_url("cms/Blog/My-Post", "my-project")
        == "https://cms-blog-my-post.my-project.pages.dev"
    )
