"""YAML frontmatter parsing and serialization for markdown content."""

import re
from typing import Any

import yaml

from gitzen.exceptions import ValidationError

_FRONTMATTER_RE = re.compile(r"^---\r?\n([\s\S]*?)\r?\n---\r?\n?([\s\S]*)$")


def parse_frontmatter(raw: str) -> tuple[dict[str, Any], str]:
    """
    Split a markdown document into its frontmatter mapping and body.

    A document without a leading "---" block has empty frontmatter and the
    whole text as body.

    Raises:
        ValidationError: If the frontmatter block is not valid YAML
    """
    match = _FRONTMATTER_RE.match(raw)
    if not match:
        return {}, raw
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        raise ValidationError("INVALID_FRONTMATTER", "Frontmatter is not valid YAML") from None
    if not isinstance(data, dict):
        data = {}
    return data, match.group(2)


def serialize_frontmatter(frontmatter: dict[str, Any], body: str) -> str:
    """Render frontmatter and body back into a markdown document.

    Empty values (None and "") are dropped; key order is preserved.
    """
    cleaned = {k: v for k, v in frontmatter.items() if v is not None and v != ""}
    dumped = yaml.safe_dump(
        cleaned,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )
    trimmed = body.lstrip()
    return f"---\n{dumped}---\n" + (f"\n{trimmed}" if trimmed else "") + "\n"
