"""
Tests for frontmatter parsing and serialization.

Feature: gitzen-content
"""

import datetime

import pytest

from gitzen.exceptions import ValidationError
from gitzen.frontmatter import parse_frontmatter, serialize_frontmatter


def test_parse_splits_frontmatter_and_body() -> None:
    raw = "---\ntitle: Hello\ntags:\n  - intro\n  - news\n---\n\nBody text.\n"

    frontmatter, body = parse_frontmatter(raw)

    assert frontmatter == {"title": "Hello", "tags": ["intro", "news"]}
    assert body == "\nBody text.\n"


def test_parse_accepts_crlf() -> None:
    frontmatter, body = parse_frontmatter("---\r\ntitle: Hello\r\n---\r\nBody")

    assert frontmatter == {"title": "Hello"}
    assert body == "Body"


def test_parse_without_frontmatter_returns_whole_text() -> None:
    assert parse_frontmatter("Just text\n") == ({}, "Just text\n")


def test_parse_non_mapping_frontmatter_is_empty() -> None:
    frontmatter, body = parse_frontmatter("---\n- a\n- b\n---\nbody")

    assert frontmatter == {}
    assert body == "body"


def test_parse_keeps_yaml_types() -> None:
    frontmatter, _ = parse_frontmatter("---\ndraft: true\norder: 3\ndate: 2024-05-01\n---\n")

    assert frontmatter == {"draft": True, "order": 3, "date": datetime.date(2024, 5, 1)}


def test_parse_invalid_yaml_raises_validation_error() -> None:
    with pytest.raises(ValidationError) as exc_info:
        parse_frontmatter("---\ntitle: [unclosed\n---\nbody")

    assert exc_info.value.code == "INVALID_FRONTMATTER"


def test_serialize_preserves_key_order() -> None:
    document = serialize_frontmatter({"title": "Hello", "tags": ["a", "b"]}, "Body")

    assert document == "---\ntitle: Hello\ntags:\n- a\n- b\n---\n\nBody\n"


def test_serialize_drops_empty_values() -> None:
    document = serialize_frontmatter({"title": "X", "draft": None, "summary": ""}, "")

    assert document == "---\ntitle: X\n---\n\n"


def test_serialize_trims_leading_body_whitespace() -> None:
    document = serialize_frontmatter({"title": "X"}, "\n\n  Body")

    assert document.endswith("---\n\nBody\n")


def test_serialized_document_parses_back() -> None:
    frontmatter = {"title": "Ünïcode title", "tags": ["x"], "draft": False, "order": 2}

    parsed, body = parse_frontmatter(serialize_frontmatter(frontmatter, "Body\n\nMore."))

    assert parsed == frontmatter
    assert body.strip() == "Body\n\nMore."


def test_serialize_empty_frontmatter_parses_back() -> None:
    parsed, body = parse_frontmatter(serialize_frontmatter({}, "Body"))

    assert parsed == {}
    assert body.strip() == "Body"
