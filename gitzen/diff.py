"""
Word-level and frontmatter diffing for content review.

The word diff is a longest-common-subsequence over whitespace-preserving
tokens, so joining every segment of one side reproduces that side exactly.
"""

import json
import re
from typing import Any

from gitzen.exceptions import ValidationError
from gitzen.types.content import ABSENT, DiffSegment, FieldDiff

EQUAL = "equal"
ADDED = "added"
REMOVED = "removed"

# Per side. The LCS table is O(m*n).
MAX_DIFF_TOKENS = 20_000

_TOKEN_RE = re.compile(r"\S+|\s+")


def tokenize(text: str) -> list[str]:
    """Split text into runs of non-whitespace and runs of whitespace."""
    return _TOKEN_RE.findall(text)


def word_diff(old: str, new: str) -> list[DiffSegment]:
    """
    Diff two texts word by word.

    Args:
        old: Previous text
        new: Current text

    Returns:
        Segments in document order; adjacent segments never share a type

    Raises:
        ValidationError: If either side has more than MAX_DIFF_TOKENS tokens
    """
    a = tokenize(old)
    b = tokenize(new)
    if len(a) > MAX_DIFF_TOKENS or len(b) > MAX_DIFF_TOKENS:
        raise ValidationError(
            "DIFF_TOO_LARGE", f"Text too large to diff (limit {MAX_DIFF_TOKENS} words per side)"
        )

    m, n = len(a), len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        row, prev = dp[i], dp[i - 1]
        for j in range(1, n + 1):
            if a[i - 1] == b[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    # Backtrack from the end. Additions win ties here, so a replaced word
    # comes out as the removal followed by the addition.
    steps: list[tuple[str, str]] = []
    i, j = m, n
    while i > 0 or j > 0:
        if i > 0 and j > 0 and a[i - 1] == b[j - 1]:
            steps.append((EQUAL, a[i - 1]))
            i -= 1
            j -= 1
        elif j > 0 and (i == 0 or dp[i][j - 1] >= dp[i - 1][j]):
            steps.append((ADDED, b[j - 1]))
            j -= 1
        else:
            steps.append((REMOVED, a[i - 1]))
            i -= 1
    steps.reverse()

    segments: list[DiffSegment] = []
    for kind, text in steps:
        if segments and segments[-1].type == kind:
            segments[-1].text += text
        else:
            segments.append(DiffSegment(type=kind, text=text))
    return segments


def _serialize(value: Any) -> str | None:
    if value is ABSENT:
        return None
    return json.dumps(value, sort_keys=True, default=str)


def diff_frontmatter(old: dict[str, Any], new: dict[str, Any]) -> list[FieldDiff]:
    """
    Compare two frontmatter mappings field by field.

    Fields are listed in the old mapping's order followed by fields only in
    the new one. A field missing on one side holds ABSENT there, which is
    different from an explicit null.
    """
    names = list(old)
    names.extend(name for name in new if name not in old)

    fields = []
    for name in names:
        old_value = old.get(name, ABSENT)
        new_value = new.get(name, ABSENT)
        fields.append(
            FieldDiff(
                name=name,
                old_value=old_value,
                new_value=new_value,
                changed=_serialize(old_value) != _serialize(new_value),
            )
        )
    return fields
